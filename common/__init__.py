"""Shared helpers used by the file service and the object store adapters."""
