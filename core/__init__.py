"""core/ -- Configuration, error taxonomy and the shared database for Yearbook.

Layer rule: core/ is the kernel. It does NOT import from api/, auth/, or entries/.
"""
