import logging
import re
from dataclasses import dataclass

from .errors import AdmissionError, InvalidName
from .fabric import validate_fabric
from .ipvlan import validate_ipvlan
from .netconf import confirm_loadable, parse_config, validate_cni_config
from .sriov import validate_sriov_config

logger = logging.getLogger("nad-webhook.validator")

NAME_RE = re.compile(r"^[a-z-1-9]([-a-z0-9]*[a-z0-9])?$")


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    mutation_required: bool = False
    error: AdmissionError | None = None

    @property
    def message(self):
        return str(self.error) if self.error is not None else ""


def validate_network_attachment_definition(operation, nad, old_nad, lister, infra_vlans=frozenset()):
    """Run every check on ``nad``; return whether its config must be mutated.

    Raises an AdmissionError for the first failed check.
    """
    if not NAME_RE.match(nad.name):
        raise InvalidName("net-attach-def name is invalid")

    if not nad.config:
        logger.info(f"Allowing empty spec.config of {nad.ref}")
        return False

    doc = parse_config(nad.config, nad.name)
    validate_cni_config(doc)
    validate_sriov_config(doc, infra_vlans)
    confirm_loadable(doc)

    mutation_required = validate_ipvlan(operation, nad, old_nad)
    validate_fabric(operation, nad, old_nad, lister)
    return mutation_required


def review_network_attachment_definition(operation, nad, old_nad, lister, infra_vlans=frozenset()):
    try:
        mutation_required = validate_network_attachment_definition(operation, nad, old_nad, lister, infra_vlans)
    except AdmissionError as e:
        return Verdict(allowed=False, error=e)
    logger.info(f"Network Attachment Definition {nad.ref} is valid (mutation required: {mutation_required})")
    return Verdict(allowed=True, mutation_required=mutation_required)
