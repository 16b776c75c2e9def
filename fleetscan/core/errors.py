"""
Hiérarchie d'exceptions du moteur de scan

Les erreurs par hôte (connectivité, accès, détection, timeout) sont
rattrapées dans la sonde et converties en résultat classifié. Seules les
erreurs de configuration remontent jusqu'à l'appelant, avant tout envoi.
"""

from typing import List, Optional


class FleetScanError(Exception):
    """Erreur de base de FleetScan"""


class ConfigurationError(FleetScanError):
    """
    Configuration de scan invalide

    Levée au démarrage du scan, avant qu'aucun hôte ne soit sondé.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Configuration invalide: " + "; ".join(self.errors))


class ProbeError(FleetScanError):
    """Erreur survenue pendant la sonde d'un hôte"""

    def __init__(self, host: str, message: str):
        self.host = host
        super().__init__(message)


class ConnectivityError(ProbeError):
    """L'hôte ne répond pas (réseau, DNS, hôte éteint)"""


class AccessDeniedError(ProbeError):
    """L'hôte répond mais refuse la session (authentification, pare-feu, droits)"""


class DetectionError(ProbeError):
    """Une méthode de détection a échoué (erreur transitoire de requête)"""

    def __init__(self, host: str, message: str, method: Optional[str] = None):
        self.method = method
        super().__init__(host, message)


class ProbeTimeout(ProbeError):
    """Le budget de temps alloué à l'hôte est épuisé"""


class InvariantViolation(FleetScanError):
    """
    Incohérence interne du dispatcher ou de l'agrégateur

    Résultat en double pour un hôte, ou résultat pour un hôte inconnu.
    Signalée bruyamment dans les logs mais ne doit jamais interrompre le scan.
    """

    def __init__(self, host: str, message: str):
        self.host = host
        super().__init__(message)
