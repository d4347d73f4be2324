"""auth/ -- Credentials, sessions and the auth gateway for Yearbook.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/ or entries/.
api/ imports from auth/, not the other way around.
"""
