"""Seed content for documents missing on disk."""

from memory_bank_server.models.domain import DocumentKey

TEMPLATES: dict[DocumentKey, str] = {
    DocumentKey.PROJECT_BRIEF: (
        "# Project Brief\n\n## Overview\n\n## Goals\n\n## Scope\n\n## Timeline\n"
    ),
    DocumentKey.PRODUCT_CONTEXT: (
        "# Product Context\n\n## User stories\n\n## Requirements\n\n"
        "## Constraints\n\n## Success criteria\n"
    ),
    DocumentKey.ACTIVE_CONTEXT: (
        "# Active Context\n\n## Current task\n\n## Recent changes\n\n"
        "## Next steps\n\n## Blockers\n"
    ),
    DocumentKey.SYSTEM_PATTERNS: (
        "# System Patterns\n\n## System architecture\n\n## Key technical decisions\n\n"
        "## Design patterns in use\n\n## Component relationships\n"
    ),
    DocumentKey.TECH_CONTEXT: (
        "# Tech Context\n\n## Technologies used\n\n## Development setup\n\n"
        "## Technical constraints\n\n## Dependencies\n"
    ),
    DocumentKey.PROGRESS: (
        "# Progress\n\n## What works\n\n## What's left to build\n\n"
        "## Current status\n\n## Known issues\n"
    ),
}


def template_for(key: DocumentKey) -> str:
    return TEMPLATES[key]
