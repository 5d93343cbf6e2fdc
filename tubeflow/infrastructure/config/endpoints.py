"""Registry of the workflow backend's REST endpoints.

Lead -> Quotation -> Purchase Order -> DO1 -> DO2/Invoice, plus inventory,
SMS, Tally push, reports and the health check.
"""

from typing import Dict

from tubeflow.domain.models.common import EndpointName

API_ENDPOINTS: Dict[EndpointName, str] = {
    EndpointName("leads"): "/api/leads",
    EndpointName("quotations"): "/api/quotations",
    EndpointName("pos"): "/api/pos",
    EndpointName("do1"): "/api/do1",
    EndpointName("do2"): "/api/do2",
    EndpointName("inventory"): "/api/inventory",
    EndpointName("invoice"): "/api/invoice",
    EndpointName("invoices"): "/api/invoices",
    EndpointName("sms"): "/api/sms",
    EndpointName("tally"): "/api/tally",
    EndpointName("reports"): "/api/reports",
    EndpointName("health"): "/api/health",
}


def resolve_endpoint(target: str, base_url: str) -> str:
    """Turns an endpoint name, path or absolute URL into a full URL.

    `leads` and `leads/42` resolve through the registry (`/api/leads/42`);
    anything else is treated as a path under `base_url` unless it is already
    absolute.
    """
    if target.startswith(("http://", "https://")):
        return target
    base = base_url.rstrip("/")
    name, _, rest = target.lstrip("/").partition("/")
    if name in API_ENDPOINTS:
        path = API_ENDPOINTS[EndpointName(name)]
        return f"{base}{path}/{rest}" if rest else f"{base}{path}"
    return f"{base}/{target.lstrip('/')}"
