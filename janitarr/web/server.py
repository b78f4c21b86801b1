"""
Web server for Janitarr.
JSON API endpoints over the core application.
"""

from flask import Flask, Response, jsonify, request
from typing import Dict, Any

from ..automation import SchedulerError
from ..config import ConfigError, ServerNotFoundError


class WebServer:
    """Flask web server."""

    def __init__(self, app_core):
        self.core = app_core
        self.config = app_core.config
        self.log = app_core.logger.get_logger('web')

        self.app = Flask(__name__)

        self._register_api()

    def _register_api(self):
        """Register API endpoints."""

        # ============ Status ============
        @self.app.route('/api/health')
        def api_health():
            return jsonify(self.core.health())

        @self.app.route('/api/status')
        def api_status():
            return jsonify(self.core.get_status())

        # ============ Config ============
        @self.app.route('/api/config', methods=['GET'])
        def api_get_config():
            return jsonify(self.config.to_dict())

        @self.app.route('/api/config', methods=['POST'])
        def api_save_config():
            data = request.get_json(silent=True) or {}
            try:
                self.config.update(data)
            except (ConfigError, TypeError) as e:
                return jsonify({'success': False, 'message': str(e)}), 400
            return jsonify({'success': True, 'config': self.config.to_dict()})

        # ============ Servers ============
        @self.app.route('/api/servers', methods=['GET'])
        def api_list_servers():
            return jsonify([s.to_public_dict() for s in self.config.servers])

        @self.app.route('/api/servers', methods=['POST'])
        def api_add_server():
            data = request.get_json(silent=True) or {}
            try:
                server = self.core.add_server(data)
            except ConfigError as e:
                return jsonify({'success': False, 'message': str(e)}), 400
            return jsonify({'success': True, 'server': server}), 201

        @self.app.route('/api/servers/test', methods=['POST'])
        def api_test_new_server():
            data = request.get_json(silent=True) or {}
            return jsonify(self.core.test_new_server(data))

        @self.app.route('/api/servers/<server_id>', methods=['GET'])
        def api_get_server(server_id):
            try:
                return jsonify(self.core.get_server(server_id))
            except ServerNotFoundError as e:
                return jsonify({'success': False, 'message': str(e)}), 404

        @self.app.route('/api/servers/<server_id>', methods=['PUT'])
        def api_update_server(server_id):
            data = request.get_json(silent=True) or {}
            try:
                server = self.core.update_server(server_id, data)
            except ServerNotFoundError as e:
                return jsonify({'success': False, 'message': str(e)}), 404
            except ConfigError as e:
                return jsonify({'success': False, 'message': str(e)}), 400
            return jsonify({'success': True, 'server': server})

        @self.app.route('/api/servers/<server_id>', methods=['DELETE'])
        def api_remove_server(server_id):
            try:
                self.core.remove_server(server_id)
            except ConfigError as e:
                return jsonify({'success': False, 'message': str(e)}), 404
            return jsonify({'success': True})

        @self.app.route('/api/servers/<server_id>/test', methods=['POST'])
        def api_test_server(server_id):
            return jsonify(self.core.test_server(server_id))

        # ============ Automation ============
        @self.app.route('/api/automation/trigger', methods=['POST'])
        def api_trigger():
            data = request.get_json(silent=True) or {}
            dry_run = data.get('dry_run')
            try:
                result = self.core.run_cycle(dry_run=dry_run)
            except SchedulerError as e:
                return jsonify({'success': False, 'message': str(e)}), 409
            return jsonify(self._cycle_response(result))

        @self.app.route('/api/automation/status')
        def api_automation_status():
            return jsonify(self.core.scheduler.get_status().to_dict())

        @self.app.route('/api/automation/cancel', methods=['POST'])
        def api_cancel():
            return jsonify({'success': self.core.cancel_cycle()})

        # ============ Logs ============
        @self.app.route('/api/logs')
        def api_logs():
            entry_type = request.args.get('type')
            server = request.args.get('server')
            limit = request.args.get('limit', 100, type=int)
            return jsonify({'logs': self.core.get_logs(entry_type, server, limit)})

        @self.app.route('/api/logs/app')
        def api_app_logs():
            level = request.args.get('level')
            limit = request.args.get('limit', 200, type=int)
            return jsonify(self.core.get_app_logs(level, limit))

        @self.app.route('/api/logs', methods=['DELETE'])
        def api_clear_logs():
            removed = self.core.clear_logs()
            return jsonify({'success': True, 'message': 'All logs cleared successfully',
                            'removed': removed})

        @self.app.route('/api/logs/export')
        def api_export_logs():
            fmt = request.args.get('format', 'json').lower()
            try:
                exported = self.core.export_logs(fmt)
            except ValueError as e:
                return jsonify({'success': False, 'message': str(e)}), 400
            if fmt == 'csv':
                response = Response(exported, mimetype='text/csv')
            else:
                response = jsonify(exported)
            response.headers['Content-Disposition'] = f'attachment; filename=janitarr_logs.{fmt}'
            return response

        # ============ Stats ============
        @self.app.route('/api/stats/summary')
        def api_stats_summary():
            return jsonify(self.core.get_summary_stats())

        @self.app.route('/api/stats/servers/<server_id>')
        def api_server_stats(server_id):
            try:
                return jsonify(self.core.get_server_stats(server_id))
            except ServerNotFoundError as e:
                return jsonify({'success': False, 'message': str(e)}), 404

    @staticmethod
    def _cycle_response(result) -> Dict[str, Any]:
        error = result.error
        return {
            'success': result.success,
            'message': str(error) if error else 'Cycle complete',
            'result': result.to_dict(),
        }

    def run(self, host: str = '0.0.0.0', port: int = 8080, debug: bool = False):
        """Start the server."""
        self.log.info(f"Starting web server on {host}:{port}")
        self.app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)
