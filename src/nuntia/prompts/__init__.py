"""Prompt templates for release notes generation."""
