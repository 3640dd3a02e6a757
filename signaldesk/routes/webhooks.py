"""
SignalDesk - Webhook Routes
Inbound, signature-verified callbacks from BoomFi and Clerk

Both providers retry on non-2xx responses, so every verified event is
acknowledged with 200, including duplicates and event types we ignore.
A database failure while applying an event answers 500 so the provider
redelivers it.
"""
from flask import Blueprint, request, jsonify
import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from signaldesk.limiter import limiter
from signaldesk.services.webhook_service import get_webhook_processor
from signaldesk.services.payment_service import get_boomfi_service
from signaldesk.services.auth_provider import get_clerk_service, AuthProviderError

logger = logging.getLogger(__name__)
webhooks_bp = Blueprint('webhooks', __name__)

# Provider deliveries arrive from a handful of addresses
limiter.exempt(webhooks_bp)


@webhooks_bp.route('/boomfi', methods=['POST'])
def receive_boomfi_webhook():
    """
    Receive a payment event from BoomFi

    POST /api/webhooks/boomfi
    Header: BoomFi-Signature: <hex hmac-sha256 of body>

    Handles payment.succeeded, subscription.created, subscription.updated
    """
    raw_body = request.get_data()
    signature = request.headers.get('BoomFi-Signature')

    if not get_boomfi_service().verify_webhook_signature(raw_body, signature):
        logger.warning("BoomFi webhook rejected: invalid signature")
        return jsonify({'error': 'Invalid signature'}), 401

    try:
        event = json.loads(raw_body)
    except json.JSONDecodeError:
        return jsonify({'error': 'Invalid JSON body'}), 400

    try:
        result = get_webhook_processor().handle_boomfi_event(event)
    except SQLAlchemyError:
        return jsonify({'error': 'Failed to process webhook'}), 500

    return jsonify(result)


@webhooks_bp.route('/clerk', methods=['POST'])
def receive_clerk_webhook():
    """
    Receive a user lifecycle event from Clerk (svix-signed)

    POST /api/webhooks/clerk
    Headers: svix-id, svix-timestamp, svix-signature
    """
    try:
        event = get_clerk_service().verify_webhook(request.get_data(), request.headers)
    except AuthProviderError as e:
        logger.warning(f"Clerk webhook rejected: {e}")
        return jsonify({'error': str(e)}), e.status_code or 400

    try:
        result = get_webhook_processor().handle_clerk_event(request.headers['svix-id'], event)
    except SQLAlchemyError:
        return jsonify({'error': 'Failed to process webhook'}), 500

    return jsonify(result)
