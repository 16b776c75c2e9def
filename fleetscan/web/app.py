"""
Application Flask de suivi des scans

API JSON locale permettant de suivre la progression du scan en cours,
de consulter le dernier rapport, de lancer ou d'annuler un scan.
"""

import logging

from flask import Flask, jsonify

from ..core.errors import ConfigurationError
from ..core.logger import get_logger


class ScanWebApp:
    """
    Application web Flask du scanner

    Cette classe encapsule l'application Flask ; elle pilote l'agent
    fourni, qui porte le scanner et la liste des hôtes.
    """

    def __init__(self, agent, logger=None):
        """
        Initialise l'application web

        Args:
            agent: Instance de FleetScanAgent
            logger: Logger optionnel
        """
        self.agent = agent
        self.logger = logger or get_logger('FleetScan.web')

        self.app = Flask(__name__)

        # Désactiver les logs Flask pour éviter la pollution
        logging.getLogger('werkzeug').setLevel(logging.ERROR)

        self._register_routes()

    def _register_routes(self):
        """
        Enregistre les routes de l'API
        """
        @self.app.route('/api/status')
        def api_status():
            """Progression du scan en cours et résumé du dernier scan"""
            progress = self.agent.scanner.get_progress()
            report = self.agent.scanner.last_report

            return jsonify({
                'running': self.agent.scanner.is_running,
                'progress': {
                    'completed': progress.completed,
                    'total': progress.total,
                    'percent': progress.percent,
                    'last_host': progress.last_result.host if progress.last_result else None,
                    'last_classification': (progress.last_result.classification.value
                                            if progress.last_result else None)
                } if progress else None,
                'last_summary': report.summary.to_dict() if report else None,
                'last_status': report.status.value if report else None,
                'stats': self.agent.scanner.get_scan_stats(),
                'sender': self.agent.sender.get_stats()
            })

        @self.app.route('/api/results')
        def api_results():
            """Dernier rapport complet"""
            report = self.agent.scanner.last_report
            if report is None:
                return jsonify({'success': False, 'message': 'Aucun scan terminé'}), 404
            return jsonify(report.to_dict())

        @self.app.route('/api/scan', methods=['POST'])
        def api_scan():
            """Lance un scan en arrière-plan"""
            if self.agent.scanner.is_running:
                return jsonify({'success': False, 'message': 'Un scan est déjà en cours'}), 409

            try:
                self.agent.start_background_scan()
            except ConfigurationError as e:
                return jsonify({'success': False, 'message': str(e)}), 400

            self.logger.info("Scan lancé via l'interface web")
            return jsonify({'success': True, 'message': 'Scan démarré'}), 202

        @self.app.route('/api/cancel', methods=['POST'])
        def api_cancel():
            """Annule le scan en cours"""
            cancelled = self.agent.scanner.cancel()
            if not cancelled:
                return jsonify({'success': False, 'message': 'Aucun scan en cours'}), 409
            return jsonify({'success': True, 'message': 'Annulation demandée'})

    def run(self, host='127.0.0.1', port=18744, debug=False):
        """
        Lance le serveur web

        Args:
            host: Adresse d'écoute
            port: Port d'écoute
            debug: Mode debug Flask
        """
        self.logger.info(f"Interface web sur http://{host}:{port}")
        self.app.run(host=host, port=port, debug=debug, use_reloader=False)
