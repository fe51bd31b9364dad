"""Service layer: token/session/OTP lifecycle and maintenance mode."""
