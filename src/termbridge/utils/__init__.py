"""Shared utilities for termbridge."""
