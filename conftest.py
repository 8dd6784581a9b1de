import os

# api.security refuses to import without a signing key
os.environ.setdefault("JWT_SECRET_KEY", "test-signing-key-not-for-production")
# Keep bcrypt cheap in tests
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
