"""
Rendering of SSDP M-SEARCH requests.
"""
from ..exceptions import InvalidArgumentError

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
SSDP_PORT = 1900
DEFAULT_MX_SECONDS = 2

MSEARCH_TEMPLATE = (
    "M-SEARCH * HTTP/1.1\r\n"
    "HOST: {host}:{port}\r\n"
    'MAN: "ssdp:discover"\r\n'
    "ST: {service_type}\r\n"
    "MX: {mx}\r\n"
    "\r\n"
)


def build_msearch_request(
    service_type: str,
    host: str = SSDP_MULTICAST_ADDRESS,
    port: int = SSDP_PORT,
    mx: int = DEFAULT_MX_SECONDS,
) -> bytes:
    """Returns the M-SEARCH request bytes for ``service_type``.

    The service type is interpolated verbatim into the ST header.

    Raises:
        InvalidArgumentError: if ``service_type`` is empty.
    """
    if not service_type:
        raise InvalidArgumentError("serviceType must not be an empty string!")
    return MSEARCH_TEMPLATE.format(host=host, port=port, service_type=service_type, mx=mx).encode("utf-8")
