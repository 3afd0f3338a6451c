"""auth/ -- Users, session tokens and device credentials for HerdWatch.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or herd/.
api/ imports from auth/, not the other way around.
"""
