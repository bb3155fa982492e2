"""Authentication.

Users sign in with email/password and receive a signed bearer token.
Every token is backed by a UserSession row, so tokens can be revoked
(logout, logout-all) and expire server-side even while the signature
is still valid.
"""
