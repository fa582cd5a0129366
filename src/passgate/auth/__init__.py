"""Authentication primitives.

Learn: Three building blocks, none of which touch the database:
1. password.py → bcrypt hashing for passwords and reset codes
2. jwt.py → signed, expiring tokens carrying uid (+ hashed reset code)
3. dependencies.py → the bearer-token gate used by protected routes

nonces.py adds the optional consumed-token set for single-use resets.
"""
