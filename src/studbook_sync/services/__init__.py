"""Collaborators outside the sync core: credentials and species enrichment."""
