"""Proxy and DNS workflows.

The proxy workflow runs, in order:
    authenticate → discover network → verify runtime → select domains →
    reconcile DNS → ensure placeholder → configure proxy → report

Each step returns a new WorkflowState instead of mutating shared fields.
"""
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from homeport.core.config import HomeportConfig
from homeport.core.errors import FailureKind, HomeportError
from homeport.core.logger import console as default_console
from homeport.core.logger import get_logger
from homeport.core.pipeline import Pipeline, PipelineOutcome, Step, StepResult
from homeport.core.prompts import Prompter
from homeport.core.runner import CommandRunner
from homeport.models.dns import DomainSelection, Zone
from homeport.models.network import NetworkInfo, is_valid_hostname, is_valid_ipv4
from homeport.services.dns.provider import DNSProvider, ReconcileReport
from homeport.services.docker.placeholder import PlaceholderOutcome, PlaceholderService
from homeport.services.docker.runtime import ContainerRuntime
from homeport.services.network import NetworkProbe
from homeport.services.proxy.traefik import ProxySetupResult, TraefikConfigurator

logger = get_logger(__name__)

NO_DOMAINS_MESSAGE = "No domains selected, nothing to configure."


@dataclass(frozen=True)
class WorkflowState:
    """Values produced so far, threaded from step to step."""

    token: Optional[str] = None
    network: Optional[NetworkInfo] = None
    zones: Tuple[Zone, ...] = ()
    selections: Tuple[DomainSelection, ...] = ()
    dns_report: Optional[ReconcileReport] = None
    placeholder: Optional[PlaceholderOutcome] = None
    proxy: Optional[ProxySetupResult] = None

    @property
    def domains(self) -> List[str]:
        return [s.domain for s in self.selections]


def dns_failure(report: ReconcileReport) -> Optional[StepResult]:
    """A failed create is terminal once every domain has been attempted."""
    failed = report.failed_creates
    if not failed:
        if report.failed:
            logger.warning(f"⚠ DNS not updated for: {', '.join(o.domain for o in report.failed)}")
        return None
    domains = ", ".join(o.domain for o in failed)
    return StepResult.failed(FailureKind.DNS_RECORD, f"Failed to create DNS record for {domains}")


class ProxyWorkflow:
    """Wire selected domains through DNS and Traefik to the local backend port."""

    def __init__(
        self,
        config: HomeportConfig,
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
        dns: Optional[DNSProvider] = None,
        network: Optional[NetworkProbe] = None,
        runtime: Optional[ContainerRuntime] = None,
        placeholder: Optional[PlaceholderService] = None,
        proxy: Optional[TraefikConfigurator] = None,
        email: Optional[str] = None,
        assume_yes: bool = False,
        mock: bool = False,
    ):
        self.config = config
        self.console = console or default_console
        self.prompter = prompter or Prompter(self.console)
        self.email = email

        self.runtime = runtime or ContainerRuntime(CommandRunner(timeout=config.command_timeout, mock=mock))
        self.dns = dns or DNSProvider(config, self.prompter, self.console, assume_yes=assume_yes)
        self.network = network or NetworkProbe(self.prompter, self.console, http_timeout=config.http_timeout)
        self.placeholder = placeholder or PlaceholderService(self.runtime, config)
        self.proxy = proxy or TraefikConfigurator(self.runtime, config, self.prompter, self.console)

    def steps(self) -> List[Step[WorkflowState]]:
        return [
            Step("authenticate", self.authenticate),
            Step("discover-network", self.discover_network),
            Step("verify-runtime", self.verify_runtime),
            Step("select-domains", self.select_domains),
            Step("reconcile-dns", self.reconcile_dns),
            Step("ensure-placeholder", self.ensure_placeholder),
            Step("configure-proxy", self.configure_proxy),
            Step("report", self.report),
        ]

    def run(self) -> PipelineOutcome[WorkflowState]:
        self.console.print("[green]🚀 Setting up DNS and the Traefik reverse proxy...[/green]\n")
        return Pipeline(self.steps()).run(WorkflowState())

    # Steps

    def authenticate(self, state: WorkflowState) -> StepResult[WorkflowState]:
        return StepResult.ok(replace(state, token=self.dns.ensure_token()))

    def discover_network(self, state: WorkflowState) -> StepResult[WorkflowState]:
        return StepResult.ok(replace(state, network=self.network.discover()))

    def verify_runtime(self, state: WorkflowState) -> StepResult[WorkflowState]:
        logger.info("Checking Docker...")
        self.runtime.preflight()
        proxy_state = self.runtime.state(self.config.proxy_container, ports=[80, 443])
        if proxy_state.running and not proxy_state.ports_bound:
            logger.warning("⚠ Traefik is running but ports 80/443 are not bound")
        elif not proxy_state.running:
            for port in self.blocked_ports():
                logger.warning(f"⚠ Port {port} is already in use, Traefik will not be able to bind it")
        logger.info(f"✓ Docker is running (traefik: {proxy_state.status.value})")
        return StepResult.ok(state)

    def blocked_ports(self) -> List[int]:
        """Proxy ports already taken by a container or host process."""
        return [port for port in (80, 443) if self.runtime.port_in_use_externally(port)]

    def select_domains(self, state: WorkflowState) -> StepResult[WorkflowState]:
        zones = self.dns.list_zones(state.token)
        selections = self.dns.select_domains(zones)
        if not selections:
            return StepResult.stop(NO_DOMAINS_MESSAGE)
        return StepResult.ok(replace(state, zones=tuple(zones), selections=tuple(selections)))

    def reconcile_dns(self, state: WorkflowState) -> StepResult[WorkflowState]:
        logger.info("Setting DNS records...")
        report = self.dns.reconcile_records(state.selections, state.network.public_ip)
        return dns_failure(report) or StepResult.ok(replace(state, dns_report=report))

    def ensure_placeholder(self, state: WorkflowState) -> StepResult[WorkflowState]:
        return StepResult.ok(replace(state, placeholder=self.placeholder.ensure_running()))

    def configure_proxy(self, state: WorkflowState) -> StepResult[WorkflowState]:
        result = self.proxy.setup(state.selections, email=self.email)
        return StepResult.ok(replace(state, proxy=result))

    def report(self, state: WorkflowState) -> StepResult[WorkflowState]:
        self.show_summary(state)
        return StepResult.ok(state)

    def show_summary(self, state: WorkflowState) -> None:
        network = state.network

        self.console.print("\n" + "=" * 60)
        self.console.print("[green]✓ Proxy setup complete![/green]")
        self.console.print("=" * 60)

        table = Table(title="Summary", show_header=False)
        table.add_column("Setting", style="yellow")
        table.add_column("Value")
        table.add_row("Public IP", network.public_ip)
        table.add_row("Internal IP", network.internal_ip)
        table.add_row("Traefik", "ports 80, 443")
        table.add_row("Dashboard", f"http://localhost:{self.config.dashboard_port}")
        self.console.print(table)

        self.console.print("\n[yellow]Active domains:[/yellow]")
        for domain in state.domains:
            self.console.print(f"• [cyan]{domain}[/cyan]")
            self.console.print(f"[dim]  HTTP:  {network.http_url(domain)}[/dim]")
            self.console.print(f"[dim]  HTTPS: {network.https_url(domain)}[/dim]")

        if network.uses_custom_ports:
            self.console.print("\n[yellow]💡 Set up port forwarding on your router![/yellow]")
            self.network.show_port_forwarding_guide(network)

        self.console.print("\n[green]🎉 All done![/green]")


class DnsWorkflow:
    """Point selected domains at an arbitrary IP (A) or hostname (CNAME)."""

    def __init__(
        self,
        config: HomeportConfig,
        target: str,
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
        dns: Optional[DNSProvider] = None,
        proxied: bool = False,
        assume_yes: bool = False,
    ):
        self.config = config
        self.target = target.strip()
        self.proxied = proxied
        self.console = console or default_console
        self.prompter = prompter or Prompter(self.console)
        self.dns = dns or DNSProvider(config, self.prompter, self.console, assume_yes=assume_yes)

    @property
    def record_type(self) -> str:
        return "A" if is_valid_ipv4(self.target) else "CNAME"

    def run(self) -> PipelineOutcome[WorkflowState]:
        self.console.print("[green]☁️  Setting up Cloudflare DNS...[/green]\n")
        return Pipeline([
            Step("validate-target", self.validate_target),
            Step("authenticate", self.authenticate),
            Step("select-domains", self.select_domains),
            Step("reconcile-dns", self.reconcile_dns),
            Step("report", self.report),
        ]).run(WorkflowState())

    def validate_target(self, state: WorkflowState) -> StepResult[WorkflowState]:
        if not (is_valid_ipv4(self.target) or is_valid_hostname(self.target)):
            raise HomeportError(
                f"Invalid target '{self.target}': expected an IPv4 address or a hostname",
                kind=FailureKind.INPUT,
            )
        return StepResult.ok(state)

    def authenticate(self, state: WorkflowState) -> StepResult[WorkflowState]:
        return StepResult.ok(replace(state, token=self.dns.ensure_token()))

    def select_domains(self, state: WorkflowState) -> StepResult[WorkflowState]:
        zones = self.dns.list_zones(state.token)
        selections = self.dns.select_domains(zones)
        if not selections:
            return StepResult.stop(NO_DOMAINS_MESSAGE)
        return StepResult.ok(replace(state, zones=tuple(zones), selections=tuple(selections)))

    def reconcile_dns(self, state: WorkflowState) -> StepResult[WorkflowState]:
        report = self.dns.reconcile_records(
            state.selections, self.target, record_type=self.record_type, proxied=self.proxied,
        )
        return dns_failure(report) or StepResult.ok(replace(state, dns_report=report))

    def report(self, state: WorkflowState) -> StepResult[WorkflowState]:
        table = Table(title="DNS records")
        table.add_column("Domain", style="cyan")
        table.add_column("Record")
        table.add_column("Result")
        for outcome in state.dns_report.outcomes:
            table.add_row(outcome.domain, f"{self.record_type} → {outcome.content}", outcome.status.value)
        self.console.print(table)
        return StepResult.ok(state)
