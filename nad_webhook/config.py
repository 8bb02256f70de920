import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger("nad-webhook.config")

# strconv.ParseBool spellings accepted by the deployment manifests
_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    port: int = 8443
    tls_cert_file: str = "/tls/tls.crt"
    tls_key_file: str = "/tls/tls.key"
    kubeconfig: str | None = None
    infra_vlans: frozenset = field(default_factory=frozenset)
    vlan_provider: str | None = None
    vlan_provider_config: str | None = None

    @property
    def ssl_context(self):
        if os.path.exists(self.tls_cert_file) and os.path.exists(self.tls_key_file):
            return (self.tls_cert_file, self.tls_key_file)
        return None


def parse_bool(value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value {value!r}")


def infra_vlans_from_env(environ) -> frozenset:
    """Return the VLAN ids reserved by the cloud infrastructure.

    The set is empty unless SRIOV_ON_NIC_1_ENABLED is true and
    INFRA_VLAN_RANGE lists whitespace separated ids.
    """
    flag = environ.get("SRIOV_ON_NIC_1_ENABLED", "")
    if not flag:
        return frozenset()
    try:
        enabled = parse_bool(flag)
    except ValueError:
        logger.warning(f"Ignoring SRIOV_ON_NIC_1_ENABLED={flag!r}: not a boolean")
        return frozenset()
    if not enabled:
        return frozenset()

    vlans = set()
    for item in environ.get("INFRA_VLAN_RANGE", "").split():
        try:
            vlans.add(int(item))
        except ValueError:
            logger.warning(f"Skipping non-integer infrastructure vlan {item!r}")
    return frozenset(vlans)


def load_settings(environ=None) -> Settings:
    environ = os.environ if environ is None else environ
    return Settings(
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        port=int(environ.get("PORT", 8443)),
        tls_cert_file=environ.get("TLS_CERT_FILE", "/tls/tls.crt"),
        tls_key_file=environ.get("TLS_KEY_FILE", "/tls/tls.key"),
        kubeconfig=environ.get("KUBECONFIG") or None,
        infra_vlans=infra_vlans_from_env(environ),
        vlan_provider=environ.get("VLAN_PROVIDER") or None,
        vlan_provider_config=environ.get("VLAN_PROVIDER_CONFIG") or None,
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    # werkzeug access lines for every admission call are noise
    logging.getLogger("werkzeug").setLevel(logging.ERROR)
