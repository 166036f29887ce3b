"""auth/ -- Credential, session and authorization package for Yamerito.

Modules, leaves first:
  errors.py       -- closed error taxonomy (AuthErrorKind)
  models.py       -- Role, User, EmployeeDetail, Claims
  credentials.py  -- $argon2id$ credential encode/decode
  passwords.py    -- Argon2id hash/verify, timing-equalized login check
  tokens.py       -- write-once signing secret, JWT issue/validate
  permissions.py  -- role gate over validated Claims
  store.py        -- SQLAlchemy Core repository for users and profiles
  dependencies.py -- FastAPI Depends() wiring: authenticate, then authorize

Layer rule: auth/ imports stdlib, third-party libraries and core/ only.
It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
