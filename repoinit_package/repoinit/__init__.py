"""
repoinit - Setup tool for repositories created from a project template

Substitutes {{KEY}} placeholders across the template's files, installs the
chosen license and configures the GitHub repository: labels, a
branch-protection ruleset and GitHub Pages.
"""

__version__ = "1.0.0"
__description__ = "Placeholder substitution and GitHub setup for templated repositories"

from .main import RepoInit, main

__all__ = ["RepoInit", "main"]
