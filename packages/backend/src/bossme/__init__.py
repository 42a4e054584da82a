"""bossme.me backend: workplace memes, votes, moderation, live updates.

Domain routes mutate memes in the database and fan out every change to
connected browsers over WebSocket, with an HTTP polling fallback for
clients that cannot hold a socket open.
"""

__version__ = "0.1.0"
