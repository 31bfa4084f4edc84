"""Nuntia: release notes drafted from a commit range.

Nuntia walks a commit range, follows the issues, pull requests and commits
those commits reference, and assembles the result into a bounded context
that a language model turns into release notes.
"""

__version__ = "0.1.0"
