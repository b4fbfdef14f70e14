"""Standalone programs spawned by the preview server: PDF render and ATS text extraction."""
