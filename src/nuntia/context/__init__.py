"""Context-building modules for gathering release metadata.

These modules fetch commits, issues and pull requests from the source
provider and assemble them into the release context the LLM reads.
"""
