#!/usr/bin/env python3
"""
Web interface for the Inheritance Vault engine

A stateless JSON API: the wizard front end posts plan requests and recovery
kits here and renders whatever comes back. Nothing is stored server-side.
"""

import logging
import os

from flask import Flask, jsonify, request

from inheritance_vault.checkin import build_check_in_plan
from inheritance_vault.config import VaultSettings
from inheritance_vault.errors import (
    BroadcastError,
    ExplorerError,
    IntegrityCheckFailed,
    NetworkUnsupported,
    ShareError,
    ValidationError,
    VaultError,
)
from inheritance_vault.explorer import broadcast_transaction, fetch_address_summary
from inheritance_vault.logging_utils import configure_logging
from inheritance_vault.recovery_kit import build_recovery_kit, load_recovery_kit
from inheritance_vault.sss import combine_shares, get_sss_options
from inheritance_vault.utils import format_btc
from inheritance_vault.validation import parse_plan_input
from inheritance_vault.vault import build_vault

logger = logging.getLogger(__name__)


def create_app(settings: VaultSettings = None) -> Flask:
    app = Flask(__name__)
    app.config['VAULT_SETTINGS'] = settings or VaultSettings.from_env()

    def current_settings() -> VaultSettings:
        return app.config['VAULT_SETTINGS']

    def _error(message: str, status: int):
        return jsonify({'success': False, 'error': message}), status

    @app.errorhandler(VaultError)
    def handle_vault_error(e):
        if isinstance(e, IntegrityCheckFailed):
            body = {'success': False, 'error': str(e), 'mismatched_fields': e.mismatched_fields}
            return jsonify(body), 400
        if isinstance(e, (ValidationError, ShareError, NetworkUnsupported, BroadcastError)):
            return _error(str(e), 400)
        if isinstance(e, ExplorerError):
            return _error(str(e), 502)
        logger.error("Unexpected engine failure: %s", e)
        return _error(str(e), 500)

    def _flag(value, default: bool) -> bool:
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() not in ('false', '0', 'no', 'off')

    def _json_body() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        return data

    @app.route('/api/health')
    def health():
        settings = current_settings()
        return jsonify({'status': 'ok', 'network': settings.network, 'sss_options': get_sss_options()})

    @app.route('/api/plan', methods=['POST'])
    def create_plan():
        """Build a vault plan and its recovery kit"""
        data = _json_body()
        payload = dict(data)
        payload.setdefault('network', current_settings().network)
        payload.setdefault('address_type', current_settings().address_type)

        vault = build_vault(parse_plan_input(payload))
        response = {
            'success': True,
            'plan': vault.plan.to_dict(),
            'result': vault.result.to_dict(),
            'recovery_kit': build_recovery_kit(vault),
        }
        return jsonify(response)

    @app.route('/api/verify_kit', methods=['POST'])
    def verify_kit():
        """Accept a recovery kit only if it rebuilds exactly"""
        kit = load_recovery_kit(_json_body())
        return jsonify({
            'success': True,
            'plan': kit.plan.to_dict(),
            'result': kit.result.to_dict(),
            'version': kit.version,
            'created_at': kit.created_at,
        })

    @app.route('/api/shares/combine', methods=['POST'])
    def combine():
        shares = _json_body().get('shares')
        if not isinstance(shares, list):
            raise ValidationError("Provide 'shares' as a list of hex strings.")
        return jsonify({'success': True, 'private_key': combine_shares(shares)})

    @app.route('/api/status/<network>/<address>')
    def address_status(network, address):
        settings = current_settings()
        summary = fetch_address_summary(
            network,
            address,
            provider=request.args.get('provider', settings.explorer_provider),
            fallback_to_other_provider=_flag(request.args.get('fallback'), settings.fallback_to_other_provider),
            timeout=settings.timeout_seconds,
        )
        return jsonify({
            'success': True,
            'summary': summary.to_dict(),
            'total_balance_btc': format_btc(summary.total_balance_sats),
            'confirmations_since_last_funding': summary.confirmations_since_last_funding,
        })

    @app.route('/api/checkin')
    def checkin():
        locktime = request.args.get('locktime_blocks', type=int)
        if locktime is None or locktime < 1:
            raise ValidationError("Provide locktime_blocks as a positive integer, e.g. ?locktime_blocks=4320.")
        plan = build_check_in_plan(
            locktime,
            request.args.get('confirmations', type=int),
            request.args.get('cadence', current_settings().checkin_cadence_ratio, type=float),
        )
        return jsonify({'success': True, 'checkin': plan.to_dict()})

    @app.route('/api/broadcast', methods=['POST'])
    def broadcast():
        data = _json_body()
        settings = current_settings()
        result = broadcast_transaction(
            data.get('network', settings.network),
            data.get('raw_tx_hex'),
            provider=data.get('provider', settings.explorer_provider),
            fallback_to_other_provider=_flag(data.get('fallback'), settings.fallback_to_other_provider),
            timeout=settings.timeout_seconds,
        )
        return jsonify({'success': True, 'broadcast': result.to_dict()})

    return app


if __name__ == "__main__":
    configure_logging()
    port = int(os.environ.get("PORT", 10000))
    create_app().run(
        host="0.0.0.0",
        port=port,
        debug=False
    )
