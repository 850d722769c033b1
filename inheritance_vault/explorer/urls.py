from urllib.parse import quote

from .config import get_explorer_config
from .utils import sanitize_address


def build_explorer_address_url(network: str, provider: str, address: str) -> str:
    config = get_explorer_config(network, provider)
    return f"{config.explorer_base_url}/address/{quote(sanitize_address(address), safe='')}"


def build_explorer_tx_url(network: str, provider: str, txid: str) -> str:
    config = get_explorer_config(network, provider)
    return f"{config.explorer_base_url}/tx/{quote(txid.strip(), safe='')}"
