"""Exceptions raised while reviewing admission requests.

Validation errors turn into a deny verdict with the message passed through
verbatim. Protocol errors turn into a plain HTTP error response.
"""


class AdmissionError(Exception):
    """Base class for every error raised by the webhook."""


# ------------------------
# Validation (deny verdict)
# ------------------------
class ValidationError(AdmissionError):
    pass


class InvalidName(ValidationError):
    pass


class MalformedConfig(ValidationError):
    pass


class MissingPluginType(ValidationError):
    pass


class MissingType(ValidationError):
    pass


class ConflictingVlanFields(ValidationError):
    pass


class MissingVlanField(ValidationError):
    pass


class ReservedVlanUsed(ValidationError):
    pass


class InvalidTrunkRange(ValidationError):
    pass


class UnsupportedQos(ValidationError):
    pass


class InvalidVlan(ValidationError):
    pass


class InvalidMasterField(ValidationError):
    pass


class MasterVlanMismatch(ValidationError):
    pass


class VlanImmutable(ValidationError):
    pass


class MasterDeviceImmutable(ValidationError):
    pass


class ProjectNetworkMismatch(ValidationError):
    pass


class OverlayMismatch(ValidationError):
    pass


class NodeSelectorMismatch(ValidationError):
    pass


class InvalidTokenFormat(ValidationError):
    pass


class CrossNamespaceReference(ValidationError):
    pass


class ClusterListError(ValidationError):
    """Listing network attachment definitions from the cluster failed."""


# ------------------------
# Protocol (HTTP error)
# ------------------------
class ProtocolError(AdmissionError):
    status_code = 400


class BadRequest(ProtocolError):
    status_code = 400


class UnsupportedMediaType(ProtocolError):
    status_code = 415


class DecodeFailure(ProtocolError):
    status_code = 400
