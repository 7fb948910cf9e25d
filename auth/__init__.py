"""auth/ -- Accounts, sessions and brute-force protection for OpenAudit.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or documents/.
api/ imports from auth/, not the other way around.
"""
