"""Shared utilities for lfx-auth."""
