"""auth/ -- Credential authentication and session issuance for Gatehouse.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. api/ and main.py import from auth/
and inject configuration into it, not the other way around.
"""
