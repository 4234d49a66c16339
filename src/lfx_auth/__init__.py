"""lfx-auth: resolve caller identifiers into canonical Auth0 directory users."""

__version__ = "0.1.0"
