"""Dedupe link storage."""
