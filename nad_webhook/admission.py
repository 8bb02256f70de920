"""AdmissionReview envelope handling: decoding requests, building responses."""
import base64
import json
import logging

from .errors import BadRequest, DecodeFailure, UnsupportedMediaType
from .nad import NetworkAttachmentDefinition

logger = logging.getLogger("nad-webhook.admission")

DEFAULT_API_VERSION = "admission.k8s.io/v1"
JSON_CONTENT_TYPE = "application/json"


def read_admission_review(body, content_type):
    if not body:
        raise BadRequest("Error reading HTTP request: empty body")
    if content_type != JSON_CONTENT_TYPE:
        raise UnsupportedMediaType(f"Invalid Content-Type='{content_type}', expected '{JSON_CONTENT_TYPE}'")
    try:
        review = json.loads(body)
    except ValueError as e:
        raise DecodeFailure(f"error deserializing AdmissionReview: {e}")
    if not isinstance(review, dict) or review.get("kind") != "AdmissionReview":
        raise DecodeFailure("error deserializing AdmissionReview: received object is not an AdmissionReview")
    if not isinstance(review.get("request"), dict):
        raise DecodeFailure("received empty AdmissionReview request")
    return review


def decode_network_attachment_definitions(req):
    """Return (nad, old_nad) from an admission request; old_nad is None unless UPDATE."""
    nad = NetworkAttachmentDefinition.from_dict(req.get("object"))
    old_nad = None
    if req.get("operation") == "UPDATE":
        old_nad = NetworkAttachmentDefinition.from_dict(req.get("oldObject"))
    return nad, old_nad


def encode_patch(patch):
    return base64.b64encode(json.dumps(patch).encode()).decode()


def admission_response(review, allowed, message="", patch=None):
    response = {
        "uid": review["request"].get("uid", ""),
        "allowed": allowed,
    }
    if message:
        response["status"] = {"message": message}
    if patch:
        response["patchType"] = "JSONPatch"
        response["patch"] = encode_patch(patch)
    return {
        "apiVersion": review.get("apiVersion", DEFAULT_API_VERSION),
        "kind": "AdmissionReview",
        "response": response,
    }


def allow(review, patch=None):
    return admission_response(review, True, patch=patch)


def deny(review, message):
    logger.info(f"Denying request: {message}")
    return admission_response(review, False, message=str(message))
