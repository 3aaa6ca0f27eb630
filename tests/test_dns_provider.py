"""Tests for the DNSProvider component."""
import pytest
from conftest import FakeDNSClient, FakeTokenStore, ScriptedPrompter, record

from homeport.core.errors import CredentialError, DNSProviderError, FailureKind, HomeportError
from homeport.models.dns import DomainSelection, Zone
from homeport.services.dns.credentials import TokenStore
from homeport.services.dns.provider import DNSProvider, OutcomeStatus


def make_provider(config, client, answers=(), token="saved-token", assume_yes=False):
    opened = []
    provider = DNSProvider(
        config,
        ScriptedPrompter(answers),
        token_store=FakeTokenStore(token),
        client_factory=lambda t: client,
        open_browser=opened.append,
        assume_yes=assume_yes,
    )
    provider.opened = opened
    return provider


def apex(zone):
    return DomainSelection(domain=zone.name, zone_id=zone.id, zone_name=zone.name)


class TestEnsureToken:
    def test_saved_valid_token_is_reused(self, config, dns_client):
        provider = make_provider(config, dns_client)

        assert provider.ensure_token() == "saved-token"
        assert provider.opened == []
        assert provider.token_store.saved == []

    def test_invalid_saved_token_prompts_for_new_one(self, config):
        tokens = []

        def factory(token):
            tokens.append(token)
            return FakeDNSClient(valid=token == "fresh-token")

        provider = DNSProvider(
            config,
            ScriptedPrompter(["fresh-token"]),
            token_store=FakeTokenStore("stale-token"),
            client_factory=factory,
            open_browser=lambda url: None,
        )

        assert provider.ensure_token() == "fresh-token"
        assert tokens == ["stale-token", "fresh-token"]
        assert provider.token_store.saved == ["fresh-token"]

    def test_missing_token_opens_guidance(self, config, dns_client):
        provider = make_provider(config, dns_client, answers=["new-token"], token=None)

        assert provider.ensure_token() == "new-token"
        assert provider.opened == [config.token_page_url]

    def test_empty_token_is_credential_failure(self, config, dns_client):
        provider = make_provider(config, dns_client, answers=[""], token=None)

        with pytest.raises(CredentialError) as exc:
            provider.ensure_token()
        assert exc.value.kind == FailureKind.CREDENTIAL
        assert exc.value.exit_code == 2

    def test_rejected_token_is_not_saved(self, config):
        provider = make_provider(config, FakeDNSClient(valid=False), answers=["bad"], token=None)

        with pytest.raises(CredentialError):
            provider.ensure_token()
        assert provider.token_store.saved == []

    def test_verified_legacy_token_is_migrated(self, config, dns_client):
        legacy = config.config_dir
        legacy.write_text("CLOUDFLARE_TOKEN=legacy-token\n")
        provider = DNSProvider(
            config,
            ScriptedPrompter([]),
            token_store=TokenStore(legacy),
            client_factory=lambda t: dns_client,
            open_browser=lambda url: None,
        )

        assert provider.ensure_token() == "legacy-token"
        assert legacy.is_dir()
        assert (legacy / "cloudflare_token").read_text() == "legacy-token"
        assert not provider.token_store.is_legacy


class TestZones:
    def test_empty_account_is_no_zones(self, config):
        provider = make_provider(config, FakeDNSClient(zones=[]))
        provider.ensure_token()

        with pytest.raises(HomeportError) as exc:
            provider.list_zones()
        assert exc.value.kind == FailureKind.NO_ZONES

    def test_listing_error_is_zone_listing(self, config, dns_client):
        dns_client.fail("list_zones", status_code=403)
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        with pytest.raises(HomeportError) as exc:
            provider.list_zones()
        assert exc.value.kind == FailureKind.ZONE_LISTING
        assert exc.value.status_code == 403


class TestSelection:
    def test_apex_and_subdomain(self, config, dns_client):
        zones = [Zone(id="z1", name="example.com"), Zone(id="z2", name="example.org")]
        provider = make_provider(config, dns_client, answers=[
            [0, 1],       # both zones
            False,        # no subdomain for example.com
            True, "App",  # app.example.org
        ])

        selections = provider.select_domains(zones)

        assert [s.domain for s in selections] == ["example.com", "app.example.org"]
        assert selections[1].zone_id == "z2"
        assert selections[0].is_apex

    def test_blank_subdomain_falls_back_to_apex(self, config, dns_client, zone):
        provider = make_provider(config, dns_client, answers=[[0], True, ""])

        assert [s.domain for s in provider.select_domains([zone])] == ["example.com"]

    def test_nothing_selected(self, config, dns_client, zone):
        provider = make_provider(config, dns_client, answers=[[]])

        assert provider.select_domains([zone]) == []


class TestReconcile:
    def test_create_then_second_run_is_idempotent(self, config, dns_client, zone):
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        first = provider.reconcile_records([apex(zone)], "203.0.113.5")
        assert first.status_of("example.com") == OutcomeStatus.CREATED
        assert len(dns_client.mutations()) == 1
        assert dns_client.mutations()[0] == (
            "create_record", "zone-1", "example.com", "A", "203.0.113.5", config.record_ttl, False,
        )

        second = provider.reconcile_records([apex(zone)], "203.0.113.5")
        assert second.status_of("example.com") == OutcomeStatus.UNCHANGED
        assert len(dns_client.mutations()) == 1

    def test_cname_replaced_by_a_record(self, config, dns_client, zone):
        dns_client.records = [record("c1", "CNAME", "example.com", "home.example.net")]
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        report = provider.reconcile_records([apex(zone)], "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.REPLACED
        assert [m[0] for m in dns_client.mutations()] == ["delete_record", "create_record"]
        assert [(r.type, r.content) for r in dns_client.records] == [("A", "1.2.3.4")]

    def test_stale_a_record_updated_in_place(self, config, dns_client, zone):
        dns_client.records = [record("a1", "A", "example.com", "5.6.7.8")]
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        report = provider.reconcile_records([apex(zone)], "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.UPDATED
        assert dns_client.mutations() == [("update_record", "zone-1", "a1", "1.2.3.4")]

    def test_ambiguous_records_declined_are_skipped(self, config, dns_client, zone):
        dns_client.records = [
            record("a1", "A", "example.com", "5.6.7.8"),
            record("a2", "A", "example.com", "9.9.9.9"),
        ]
        provider = make_provider(config, dns_client, answers=[False])
        provider.ensure_token()

        report = provider.reconcile_records([apex(zone)], "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.SKIPPED
        assert dns_client.mutations() == []

    def test_ambiguous_records_replaced_with_yes(self, config, dns_client, zone):
        dns_client.records = [
            record("a1", "A", "example.com", "5.6.7.8"),
            record("a2", "A", "example.com", "9.9.9.9"),
        ]
        provider = make_provider(config, dns_client, assume_yes=True)
        provider.ensure_token()

        report = provider.reconcile_records([apex(zone)], "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.REPLACED
        assert [(r.type, r.content) for r in dns_client.records] == [("A", "1.2.3.4")]

    def test_failed_create_is_reported(self, config, dns_client, zone):
        dns_client.fail("create_record", status_code=400)
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        report = provider.reconcile_records([apex(zone)], "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.FAILED
        assert [o.domain for o in report.failed_creates] == ["example.com"]
        assert "400" in report.failed[0].error

    def test_lookup_failure_does_not_stop_other_domains(self, config, zone):
        class FlakyClient(FakeDNSClient):
            def list_records(self, zone_id, name, record_type):
                if name == "broken.example.com":
                    raise DNSProviderError("GET failed", status_code=500)
                return super().list_records(zone_id, name, record_type)

        client = FlakyClient(zones=[zone])
        provider = make_provider(config, client)
        provider.ensure_token()
        selections = [
            DomainSelection("broken.example.com", zone.id, zone.name),
            DomainSelection("ok.example.com", zone.id, zone.name),
        ]

        report = provider.reconcile_records(selections, "1.2.3.4")

        assert report.status_of("broken.example.com") == OutcomeStatus.FAILED
        assert report.status_of("ok.example.com") == OutcomeStatus.CREATED
        assert report.failed_creates == []

    def test_cname_target(self, config, dns_client, zone):
        provider = make_provider(config, dns_client)
        provider.ensure_token()

        provider.reconcile_records([apex(zone)], "home.duckdns.org", record_type="CNAME", proxied=True)

        assert dns_client.mutations()[0][3:5] == ("CNAME", "home.duckdns.org")
        assert dns_client.mutations()[0][-1] is True

    def test_failed_update_does_not_stop_other_domains(self, config, zone):
        class RejectingClient(FakeDNSClient):
            def update_record(self, zone_id, record_id, content):
                if record_id == "a1":
                    self.calls.append(("update_record", zone_id, record_id, content))
                    raise DNSProviderError("PUT returned HTTP 403", status_code=403)
                return super().update_record(zone_id, record_id, content)

        client = RejectingClient(zones=[zone], records=[
            record("a1", "A", "example.com", "5.6.7.8"),
            record("a2", "A", "www.example.com", "5.6.7.8"),
        ])
        provider = make_provider(config, client)
        provider.ensure_token()
        selections = [apex(zone), DomainSelection("www.example.com", zone.id, zone.name)]

        report = provider.reconcile_records(selections, "1.2.3.4")

        assert report.status_of("example.com") == OutcomeStatus.FAILED
        assert report.status_of("www.example.com") == OutcomeStatus.UPDATED
        assert report.failed_creates == []
        assert [r.content for r in client.records if r.name == "www.example.com"] == ["1.2.3.4"]
