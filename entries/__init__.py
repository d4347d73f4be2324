"""entries/ -- Per-user annual entry storage.

Layer rule: entries/ imports only core/. User ids come in as plain ints from
the caller; this package never resolves sessions itself.
"""
