"""
auth — authentication core.

Provides:
  • bcrypt password hashing
  • Session store with in-memory or database backing
  • Header / session-cookie evidence extraction
  • ``AuthService`` (register, login, logout, authenticate)
  • ``require_authenticated`` access-gate dependency
"""
