"""DNS provider integration (Cloudflare)."""
from homeport.services.dns.client import CloudflareClient
from homeport.services.dns.credentials import TokenStore
from homeport.services.dns.provider import DNSProvider, OutcomeStatus, ReconcileReport
from homeport.services.dns.reconciler import ChangeAction, RecordPlan, RecordReconciler

__all__ = [
    'CloudflareClient',
    'TokenStore',
    'DNSProvider',
    'OutcomeStatus',
    'ReconcileReport',
    'ChangeAction',
    'RecordPlan',
    'RecordReconciler',
]
