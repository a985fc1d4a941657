"""Public entry points of the taxonomy engine.

Objective:
    Coordinate the three components for one account:
    1) Discover the existing mailbox taxonomy (I/O)
    2) Suggest a mapping against a canonical taxonomy (pure)
    3) Provision the entries the caller decided to create (I/O, idempotent)

High-level call tree:
    - :func:`discover` -> :func:`mailbox_taxonomy.discovery.discover`
    - :func:`suggest` -> :func:`mailbox_taxonomy.reconciliation.suggest`
    - :func:`provision` -> :class:`mailbox_taxonomy.provisioning.Provisioner`
    - :class:`TaxonomyOrchestrator`
        - :meth:`TaxonomyOrchestrator.run` (discover + suggest)
        - :meth:`TaxonomyOrchestrator.provision`

Operational notes:
    - The steps run sequentially; reconciliation needs a complete snapshot
      and provisioning needs parents created before children.
    - Nothing is kept between calls: every call builds its own provider
      client from the credential.
    - Persisting the resulting mapping is the caller's job.
"""

import logging
from typing import Iterable, Mapping, Optional, Union

from . import discovery, reconciliation
from .auth import ProviderCredential
from .config import ProviderName, Settings, get_settings
from .gmail_client import GmailLabelClient
from .models import CanonicalTaxonomy, DiscoveryResult, ProvisionResult, SuggestionResult
from .outlook_client import OutlookFolderClient
from .provider import MailboxProvider
from .provisioning import Provisioner, RequestLike
from .taxonomy import get_taxonomy

logger = logging.getLogger(__name__)

PROVIDER_CLIENTS: dict[ProviderName, type[MailboxProvider]] = {
    ProviderName.GMAIL: GmailLabelClient,
    ProviderName.OUTLOOK: OutlookFolderClient,
}


def create_provider_client(
    credential: ProviderCredential, settings: Optional[Settings] = None
) -> MailboxProvider:
    """Build the provider client matching a credential.

    Args:
        credential: Bearer credential; its provider selects the client.
        settings: Application settings (loads from env if None).

    Returns:
        MailboxProvider: Client bound to the credential.
    """
    client_class = PROVIDER_CLIENTS[credential.provider]
    return client_class(settings or get_settings(), credential)


def discover(
    credential: ProviderCredential, settings: Optional[Settings] = None
) -> DiscoveryResult:
    """Discover the existing taxonomy of the credential's mailbox.

    Raises:
        ProviderUnavailable: If the provider cannot be reached.
    """
    return discovery.discover(create_provider_client(credential, settings))


def suggest(
    discovery_result: DiscoveryResult,
    canonical_taxonomy: Union[CanonicalTaxonomy, Mapping[str, Mapping]],
) -> SuggestionResult:
    """Reconcile a discovery result with a canonical taxonomy.

    Raises:
        TaxonomyConfigError: If the canonical taxonomy is malformed.
    """
    return reconciliation.suggest(discovery_result, canonical_taxonomy)


def provision(
    credential: ProviderCredential,
    create_entries: Iterable[RequestLike],
    settings: Optional[Settings] = None,
) -> ProvisionResult:
    """Create the given entries in the credential's mailbox."""
    client = create_provider_client(credential, settings)
    return Provisioner(client).provision(create_entries)


class TaxonomyOrchestrator:
    """
    Runs discovery and reconciliation for one account.

    This class is glue: it binds a credential, settings and a canonical
    taxonomy, and delegates to the component modules.

    Attributes:
        settings: Application settings.
        credential: Bearer credential of the account.
        taxonomy: Canonical taxonomy to reconcile against.
        client: Provider client bound to the credential.
    """

    def __init__(
        self,
        credential: ProviderCredential,
        taxonomy: Optional[CanonicalTaxonomy] = None,
        settings: Optional[Settings] = None,
        business_type: Optional[str] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            credential: Bearer credential of the account.
            taxonomy: Canonical taxonomy; loaded by business type if None.
            settings: Application settings (loads from env if None).
            business_type: Business type used when ``taxonomy`` is None.
        """
        self.settings = settings or get_settings()
        self.credential = credential
        self.taxonomy = taxonomy or get_taxonomy(business_type, settings=self.settings)
        self.client = create_provider_client(credential, self.settings)

    def run(self) -> SuggestionResult:
        """Discover the mailbox and suggest a mapping.

        Returns:
            SuggestionResult: Suggestions for the caller to confirm.

        Raises:
            ProviderUnavailable: If discovery fails.
        """
        logger.info(
            "Reconciling %s mailbox against %s taxonomy (account_id=%s)",
            self.client.name,
            self.taxonomy.business_type,
            self.credential.account_id,
        )
        discovered = discovery.discover(self.client)
        if discovered.malformed:
            logger.warning(f"{len(discovered.malformed)} items could not be parsed")

        result = reconciliation.suggest(discovered, self.taxonomy)
        logger.info(
            f"Suggested {len(result.suggestions.reuse)} reuse and "
            f"{result.missing_count} create actions"
        )
        return result

    def provision(self, create_entries: Iterable[RequestLike]) -> ProvisionResult:
        """Provision entries the caller confirmed."""
        return Provisioner(self.client).provision(create_entries)
