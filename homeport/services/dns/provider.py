"""DNS provider component: credential, zones, selection, reconciliation."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

import typer
from rich.console import Console

from homeport.core.config import HomeportConfig
from homeport.core.errors import CredentialError, DNSProviderError, FailureKind, HomeportError
from homeport.core.logger import console as default_console
from homeport.core.logger import get_logger
from homeport.core.prompts import Prompter
from homeport.models.dns import DomainSelection, Zone
from homeport.services.dns.client import CloudflareClient
from homeport.services.dns.credentials import TokenStore
from homeport.services.dns.reconciler import ChangeAction, RecordChange, RecordPlan, RecordReconciler

logger = get_logger(__name__)

SUBDOMAIN_PATTERN = re.compile(r'^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$')

# Types that may occupy the target name; both are read before reconciling
MANAGED_RECORD_TYPES = ("A", "CNAME")

ClientFactory = Callable[[str], CloudflareClient]


class OutcomeStatus(Enum):
    UNCHANGED = "unchanged"
    CREATED = "created"
    UPDATED = "updated"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DomainOutcome:
    domain: str
    status: OutcomeStatus
    content: str
    error: Optional[str] = None
    create_failed: bool = False


@dataclass
class ReconcileReport:
    """Per-domain results of one reconciliation pass."""

    outcomes: List[DomainOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[DomainOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def failed_creates(self) -> List[DomainOutcome]:
        return [o for o in self.outcomes if o.create_failed]

    def status_of(self, domain: str) -> Optional[OutcomeStatus]:
        for outcome in self.outcomes:
            if outcome.domain == domain:
                return outcome.status
        return None


class DNSProvider:
    """Authenticate against Cloudflare and converge A/CNAME records.

    Example:
        provider = DNSProvider(config, Prompter())
        token = provider.ensure_token()
        zones = provider.list_zones()
        selections = provider.select_domains(zones)
        report = provider.reconcile_records(selections, "203.0.113.5")
    """

    def __init__(
        self,
        config: HomeportConfig,
        prompter: Prompter,
        console: Optional[Console] = None,
        token_store: Optional[TokenStore] = None,
        client_factory: Optional[ClientFactory] = None,
        open_browser: Callable[[str], object] = typer.launch,
        assume_yes: bool = False,
    ):
        self.config = config
        self.prompter = prompter
        self.console = console or default_console
        self.token_store = token_store or TokenStore(config.config_dir)
        self.client_factory = client_factory or self._default_client
        self.open_browser = open_browser
        self.assume_yes = assume_yes
        self.client: Optional[CloudflareClient] = None

    # Credential

    def ensure_token(self) -> str:
        """Return a verified API token, prompting for a new one when needed.

        Raises:
            CredentialError: No token entered, or the entered token fails verification
        """
        token = self.token_store.load()

        if token:
            logger.info("Checking saved Cloudflare token...")
            if self._verify(token):
                logger.info("✓ Saved Cloudflare token is valid")
                if self.token_store.is_legacy:
                    logger.info("Moving the token out of the legacy config file...")
                    self.token_store.save(token)
                return token
            logger.warning("⚠ Saved token is expired or invalid, a new one is needed")
        else:
            logger.info("A Cloudflare API token is required")

        self.show_token_guidance()
        token = self.prompter.ask("Paste the Cloudflare API token", secret=True)

        if not token:
            raise CredentialError("No token entered")

        if not self._verify(token):
            raise CredentialError("Token is invalid or lacks the required permissions")

        logger.info("✓ Token verified")
        self.token_store.save(token)
        return token

    def show_token_guidance(self) -> None:
        """Open the token page and list the scopes the token needs."""
        self.console.print("[cyan]Opening the API token creation page...[/cyan]")
        self.open_browser(self.config.token_page_url)
        self.console.print(f"[dim]{self.config.token_page_url}[/dim]")
        self.console.print("\n[yellow]Create a token with these permissions:[/yellow]")
        self.console.print("  • Zone → Zone → Read")
        self.console.print("  • Zone → DNS → Edit")
        self.console.print("  [dim](Zone Resources: All zones)[/dim]\n")

    def _verify(self, token: str) -> bool:
        client = self.client_factory(token)
        if client.verify_token():
            self.client = client
            return True
        return False

    def _default_client(self, token: str) -> CloudflareClient:
        return CloudflareClient(token, base_url=self.config.api_base_url, timeout=self.config.http_timeout)

    def _require_client(self, token: Optional[str] = None) -> CloudflareClient:
        if token is not None:
            self.client = self.client_factory(token)
        if self.client is None:
            raise CredentialError("No verified token, call ensure_token() first")
        return self.client

    # Zones and selection

    def list_zones(self, token: Optional[str] = None) -> List[Zone]:
        """List every zone on the account.

        Raises:
            HomeportError: ZONE_LISTING when the API call fails, NO_ZONES when
                the account has nothing to configure
        """
        client = self._require_client(token)
        logger.info("Fetching Cloudflare zones...")

        try:
            zones = client.list_zones()
        except DNSProviderError as e:
            raise DNSProviderError(
                f"Could not list zones: {e}",
                status_code=e.status_code,
                body=e.body,
                kind=FailureKind.ZONE_LISTING,
            ) from e

        if not zones:
            raise HomeportError(
                "No domains on this Cloudflare account. Add one at https://dash.cloudflare.com first.",
                kind=FailureKind.NO_ZONES,
            )

        logger.debug(f"zones: {[z.name for z in zones]}")
        return zones

    def select_domains(self, zones: Sequence[Zone]) -> List[DomainSelection]:
        """Let the operator pick zones and optional subdomains.

        Returns an empty list when nothing is selected.
        """
        if not zones:
            return []

        indexes = self.prompter.multi_select(
            "Select domains to route through the proxy",
            [zone.label for zone in zones],
        )

        selections: List[DomainSelection] = []
        for index in indexes:
            zone = zones[index]
            domain = zone.name
            if self.prompter.confirm(f"Add a subdomain to {zone.name}?", default=False):
                label = self.prompter.ask(
                    "Subdomain (e.g. app, api; blank for the apex)",
                    default="",
                    validator=lambda v: v == "" or bool(SUBDOMAIN_PATTERN.match(v)),
                    error_message="Letters, digits and inner hyphens only, no dots.",
                )
                if label:
                    domain = f"{label.lower()}.{zone.name}"
            selections.append(DomainSelection(domain=domain, zone_id=zone.id, zone_name=zone.name))

        if selections:
            self.console.print("\n[green]Selected domains:[/green]")
            for selection in selections:
                self.console.print(f"   • [cyan]{selection.domain}[/cyan]")

        logger.debug(f"selections: {selections}")
        return selections

    # Reconciliation

    def reconcile_records(
        self,
        selections: Sequence[DomainSelection],
        target_address: str,
        record_type: str = "A",
        proxied: bool = False,
    ) -> ReconcileReport:
        """Point every selected domain at target_address.

        Failures on one domain are logged and the remaining domains are still
        processed. The returned report lists one outcome per selection.
        """
        client = self._require_client()
        report = ReconcileReport()

        for selection in selections:
            logger.info(f"Configuring DNS for {selection.domain}...")
            outcome = self._reconcile_one(client, selection, target_address, record_type, proxied)
            report.outcomes.append(outcome)

        return report

    def _reconcile_one(
        self,
        client: CloudflareClient,
        selection: DomainSelection,
        content: str,
        record_type: str,
        proxied: bool,
    ) -> DomainOutcome:
        domain = selection.domain

        try:
            existing = []
            for managed_type in MANAGED_RECORD_TYPES:
                existing.extend(client.list_records(selection.zone_id, domain, managed_type))
        except DNSProviderError as e:
            self._log_api_error(f"Could not read DNS records for {domain}", e)
            return DomainOutcome(domain, OutcomeStatus.FAILED, content, error=str(e))

        plan = RecordReconciler(domain, record_type, content).build_plan(existing)

        if plan.is_noop:
            logger.info(f"✓ {domain} → {content} (already set)")
            return DomainOutcome(domain, OutcomeStatus.UNCHANGED, content)

        if plan.ambiguous and not self._confirm_ambiguous(plan):
            logger.warning(f"⚠ Skipped {domain}: existing records left untouched")
            return DomainOutcome(domain, OutcomeStatus.SKIPPED, content)

        for change in plan.changes:
            try:
                self._apply(client, selection.zone_id, change, proxied)
            except DNSProviderError as e:
                self._log_api_error(f"DNS {change.action.value} failed for {domain}", e)
                return DomainOutcome(
                    domain,
                    OutcomeStatus.FAILED,
                    content,
                    error=str(e),
                    create_failed=change.action == ChangeAction.CREATE,
                )

        return DomainOutcome(domain, _status_for(plan), content)

    def _apply(self, client: CloudflareClient, zone_id: str, change: RecordChange, proxied: bool) -> None:
        if change.action == ChangeAction.CREATE:
            client.create_record(
                zone_id,
                change.name,
                change.record_type,
                change.content,
                ttl=self.config.record_ttl,
                proxied=proxied,
            )
            logger.info(f"✓ {change.name} → {change.content} ({change.record_type} record created)")
        elif change.action == ChangeAction.UPDATE:
            client.update_record(zone_id, change.record_id, change.content)
            logger.info(f"✓ {change.name} → {change.content} (record updated)")
        elif change.action == ChangeAction.DELETE:
            client.delete_record(zone_id, change.record_id)
            logger.info(f"✓ Deleted {change.record_type} record {change.name} → {change.content}")

    def _confirm_ambiguous(self, plan: RecordPlan) -> bool:
        self.console.print(f"\n[yellow]⚠ {plan.name} already has {len(plan.existing)} records:[/yellow]")
        for record in plan.existing:
            proxied = "proxied" if record.proxied else "dns only"
            self.console.print(f"   • {record.type:<5} {record.content} [dim]({proxied})[/dim]")
        if self.assume_yes:
            return True
        return self.prompter.confirm(
            f"Replace them with a single {plan.record_type} record → {plan.content}?",
            default=False,
        )

    def _log_api_error(self, message: str, error: DNSProviderError) -> None:
        status = f" (HTTP {error.status_code})" if error.status_code else ""
        logger.error(f"✗ {message}{status}: {error}")
        if error.body:
            logger.debug(error.body)


def _status_for(plan: RecordPlan) -> OutcomeStatus:
    if plan.count(ChangeAction.DELETE):
        return OutcomeStatus.REPLACED
    if plan.count(ChangeAction.UPDATE):
        return OutcomeStatus.UPDATED
    return OutcomeStatus.CREATED
