"""Tests for Traefik configuration generation and lifecycle."""
import stat

import pytest
import yaml
from conftest import FakeRunner, ScriptedPrompter

from homeport.core.errors import FailureKind, ProxyConfigError
from homeport.models.dns import DomainSelection
from homeport.models.proxy import ProxyState
from homeport.services.docker.runtime import ContainerRuntime
from homeport.services.proxy.traefik import TraefikConfigurator, is_valid_email


def selection(domain, zone="example.com"):
    return DomainSelection(domain=domain, zone_id="zone-1", zone_name=zone)


def configurator(config, runner=None, answers=()):
    runtime = ContainerRuntime(runner or FakeRunner(), connection_source=lambda: [])
    return TraefikConfigurator(runtime, config, ScriptedPrompter(answers))


def load(path):
    return yaml.safe_load(path.read_text())


def test_email_validation():
    assert is_valid_email("ops@example.com")
    assert is_valid_email("first.last+tag@mail.example.co.uk")
    assert not is_valid_email("ops@")
    assert not is_valid_email("example.com")
    assert not is_valid_email("")


def test_dynamic_config_has_router_pair_per_domain(config):
    proxy = configurator(config)

    proxy.setup([selection("a.example.com"), selection("b.example.com")], email="ops@example.com")

    http = load(proxy.dynamic_file)["http"]
    routers = http["routers"]
    assert sorted(routers) == [
        "a-example-com-http", "a-example-com-https", "b-example-com-http", "b-example-com-https",
    ]
    assert sorted(http["services"]) == ["a-example-com-service", "b-example-com-service"]

    https_routers = [r for name, r in routers.items() if name.endswith("-https")]
    assert {r["tls"]["certResolver"] for r in https_routers} == {config.cert_resolver}
    assert routers["a-example-com-http"]["middlewares"] == ["redirect-to-https"]
    assert routers["a-example-com-http"]["rule"] == "Host(`a.example.com`)"
    assert http["services"]["b-example-com-service"]["loadBalancer"]["servers"] == [
        {"url": "http://host.docker.internal:3000"},
    ]
    assert "redirect-to-https" in http["middlewares"]


def test_static_config_and_compose(config):
    proxy = configurator(config)

    proxy.setup([selection("example.com")], email="ops@example.com")

    static = load(proxy.static_file)
    assert set(static["entryPoints"]) == {"web", "websecure"}
    acme = static["certificatesResolvers"]["myresolver"]["acme"]
    assert acme["email"] == "ops@example.com"
    assert acme["storage"] == "/acme.json"

    service = load(proxy.compose_file)["services"]["traefik"]
    assert service["container_name"] == "traefik"
    assert "80:80" in service["ports"] and "443:443" in service["ports"]
    assert "host.docker.internal:host-gateway" in service["extra_hosts"]


def test_acme_store_permissions(config):
    proxy = configurator(config)

    proxy.setup_directories()

    assert stat.S_IMODE(proxy.acme_file.stat().st_mode) == 0o600
    assert proxy.acme_file.read_text() == "{}"


def test_dynamic_config_rewritten_each_run(config):
    proxy = configurator(config)
    proxy.setup([selection("a.example.com")], email="ops@example.com")

    proxy.setup([selection("b.example.com")], email="ops@example.com")

    assert sorted(load(proxy.dynamic_file)["http"]["services"]) == ["b-example-com-service"]
    assert not list(proxy.config_dir.glob("*.tmp"))


def test_first_run_starts_with_compose(config):
    runner = FakeRunner()
    proxy = configurator(config, runner)

    result = proxy.setup([selection("example.com")], email="ops@example.com")

    assert result.state == ProxyState.RUNNING
    assert runner.called("docker", "compose", "up", "-d")
    assert runner.called("docker", "compose", "restart") == []


def test_running_proxy_is_restarted(config):
    runner = FakeRunner().on(["docker", "ps", "--filter"], stdout="traefik\n")
    proxy = configurator(config, runner)

    result = proxy.setup([selection("example.com")], email="ops@example.com")

    assert result.state == ProxyState.RELOADED
    assert runner.called("docker", "compose", "up") == []


def test_restart_failure_is_only_a_warning(config):
    runner = (
        FakeRunner()
        .on(["docker", "ps", "--filter"], stdout="traefik\n")
        .on(["docker", "compose", "restart"], returncode=1, stderr="boom")
    )

    result = configurator(config, runner).setup([selection("example.com")], email="ops@example.com")

    assert result.state == ProxyState.RELOAD_FAILED


def test_compose_failure_is_proxy_error(config):
    runner = FakeRunner().on(["docker", "compose", "up"], returncode=1, stderr="port 80 in use")

    with pytest.raises(ProxyConfigError) as exc:
        configurator(config, runner).setup([selection("example.com")], email="ops@example.com")
    assert exc.value.kind == FailureKind.PROXY


def test_invalid_email_flag_is_rejected(config):
    with pytest.raises(ProxyConfigError):
        configurator(config).resolve_email("not-an-email")


def test_saved_email_reused(config):
    proxy = configurator(config, answers=[True])
    proxy.setup_directories()
    proxy.email_file.write_text("saved@example.com")

    assert proxy.resolve_email() == "saved@example.com"


def test_email_prompted_and_saved(config):
    proxy = configurator(config, answers=["new@example.com"])
    proxy.setup_directories()

    assert proxy.resolve_email() == "new@example.com"
    assert proxy.load_saved_email() == "new@example.com"
    assert stat.S_IMODE(proxy.email_file.stat().st_mode) == 0o600
