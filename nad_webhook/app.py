import logging

from flask import Blueprint, Flask, current_app, jsonify, request

from .admission import allow, decode_network_attachment_definitions, deny, read_admission_review
from .config import load_settings, setup_logging
from .errors import AdmissionError, ProtocolError
from .ipvlan import mutation_patch
from .isolation import check_isolation
from .kube import NadLister, init_k8s_client
from .validator import review_network_attachment_definition
from .vlanprovider import new_vlan_provider

logger = logging.getLogger("nad-webhook")

webhook = Blueprint("webhook", __name__)


def _read_review():
    return read_admission_review(request.get_data(), request.headers.get("Content-Type", ""))


# ------------------------
# NetworkAttachmentDefinition validation and mutation
# ------------------------
@webhook.route("/validate", methods=["POST"])
def validate():
    review = _read_review()
    req = review["request"]
    operation = req.get("operation", "")

    try:
        nad, old_nad = decode_network_attachment_definitions(req)
    except AdmissionError as e:
        return jsonify(deny(review, e))

    logger.info(f"Admission request: operation={operation} nad={nad.ref}")
    verdict = review_network_attachment_definition(
        operation,
        nad,
        old_nad,
        current_app.config["NAD_LISTER"],
        current_app.config["INFRA_VLANS"],
    )
    if not verdict.allowed:
        return jsonify(deny(review, verdict.message))

    patch = None
    if verdict.mutation_required:
        try:
            patch = mutation_patch(nad)
        except AdmissionError as e:
            return jsonify(deny(review, e))
        logger.info(f"Mutating {nad.ref}: {patch}")
    return jsonify(allow(review, patch))


# ------------------------
# Pod namespace isolation
# ------------------------
@webhook.route("/isolate", methods=["POST"])
def isolate():
    review = _read_review()
    try:
        check_isolation(review["request"].get("object"))
    except AdmissionError as e:
        return jsonify(deny(review, e))
    return jsonify(allow(review))


@webhook.route("/healthz")
def health():
    return "ok", 200


def handle_protocol_error(e):
    logger.error(f"Rejecting admission request: {e}")
    return str(e), e.status_code, {"Content-Type": "text/plain; charset=utf-8"}


def handle_404(e):
    return jsonify({
        "kind": "Status",
        "apiVersion": "v1",
        "metadata": {},
        "status": "Failure",
        "message": f"The requested resource '{request.path}' was not found",
        "reason": "NotFound",
        "code": 404
    }), 404


def init_vlan_provider(settings, session=None):
    """Connect the VLAN provider named by VLAN_PROVIDER, if any."""
    if not settings.vlan_provider:
        return None
    provider = new_vlan_provider(settings.vlan_provider, settings.vlan_provider_config, session=session)
    logger.info(f"Using {settings.vlan_provider} vlan provider ({settings.vlan_provider_config})")
    return provider


def create_app(settings=None, lister=None, vlan_provider=None):
    """Build the webhook application around an injected NAD lister."""
    settings = settings or load_settings()
    app = Flask(__name__)
    app.config["NAD_LISTER"] = lister
    app.config["INFRA_VLANS"] = settings.infra_vlans
    # handed to the operators sharing this process; admission never calls it
    app.config["VLAN_PROVIDER"] = vlan_provider
    app.register_blueprint(webhook)
    app.register_error_handler(ProtocolError, handle_protocol_error)
    app.register_error_handler(404, handle_404)
    return app


# ------------------------
# Main
# ------------------------
def main():
    settings = load_settings()
    setup_logging(settings.log_level)
    if settings.infra_vlans:
        logger.info(f"Infrastructure vlans excluded from sriov configs: {sorted(settings.infra_vlans)}")

    lister = NadLister(init_k8s_client(settings.kubeconfig))
    app = create_app(settings, lister, init_vlan_provider(settings))

    ssl_ctx = settings.ssl_context
    logger.info(f"Starting server on port {settings.port} (TLS={'enabled' if ssl_ctx else 'disabled'})")
    app.run(host="0.0.0.0", port=settings.port, ssl_context=ssl_ctx, threaded=True)


if __name__ == "__main__":
    main()
