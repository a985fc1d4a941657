"""Mailbox taxonomy discovery, reconciliation and provisioning.

Objective:
    Align a user's existing mailbox organization (Gmail labels, Outlook
    folders and categories) with the canonical taxonomy an automation
    pipeline depends on:
    - Discover and normalize the existing labels/folders.
    - Decide, per canonical entry, whether an existing item covers it.
    - Create the missing entries, parents first, idempotently.

Key modules:
    - :mod:`mailbox_taxonomy.discovery`:
        Listing, system-item filtering, path parsing, taxonomy tree.
    - :mod:`mailbox_taxonomy.matching` / :mod:`mailbox_taxonomy.reconciliation`:
        Scoring rules, best-match selection, suggestions and mapping.
    - :mod:`mailbox_taxonomy.provisioning`:
        Depth-ordered, re-checked creation of missing items.
    - :mod:`mailbox_taxonomy.gmail_client` / :mod:`mailbox_taxonomy.outlook_client`:
        Provider clients.
    - :mod:`mailbox_taxonomy.taxonomy`:
        Canonical taxonomy loading and validation.
    - :mod:`mailbox_taxonomy.orchestrator`:
        Public entry points ``discover``, ``suggest`` and ``provision``.
"""

__version__ = "0.1.0"
