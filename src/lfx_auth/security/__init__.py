"""Security primitives for lfx-auth: token verification and service credentials."""
