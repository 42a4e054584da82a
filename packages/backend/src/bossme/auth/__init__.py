"""Authentication and authorization.

Learn: Sign-in happens through a third-party OAuth provider outside this
service. What reaches us is a signed JWT whose `sub` is the user's
public_id. Roles (user, moderator, admin) live in the database, so a
role change takes effect on the next request, not the next login.
"""
