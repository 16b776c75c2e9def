"""
Modèle de données du moteur de scan

Ce module définit les structures échangées entre les composants :
- Configuration immuable d'un scan (ProbeConfig)
- Résultat de sonde par hôte (HostProbeResult)
- Résumé dérivé d'un ensemble de résultats (ScanSummary)
"""

import re
import os
import ntpath
from enum import Enum
from datetime import datetime
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Tuple, Iterable

from .errors import ConfigurationError

# Identifiant opaque d'un hôte (nom réseau, FQDN ou adresse IP)
HostIdentifier = str


class DetectionMethod(Enum):
    """Méthodes de détection supportées"""
    NONE = "none"
    PACKAGE_QUERY = "package_query"
    FILESYSTEM_PATH = "filesystem_path"
    REGISTRY_KEY = "registry_key"


class Classification(Enum):
    """Catégorie de résultat attribuée à une sonde terminée"""
    SUCCESS = "success"
    OFFLINE = "offline"
    ACCESS_DENIED = "access_denied"
    PARTIAL_ERROR = "partial_error"


class ScanStatus(Enum):
    """État final d'un scan"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RegistryKeyCheck:
    """
    Clé de registre candidate

    Si value_name est vide, l'existence de la clé suffit à conclure
    que le logiciel est installé.
    """
    key: str
    value_name: str = ""

    @classmethod
    def parse(cls, raw: str) -> "RegistryKeyCheck":
        """
        Construit une vérification depuis une chaîne 'CLE|NomValeur'

        Args:
            raw: Chaîne brute issue de la configuration

        Returns:
            RegistryKeyCheck: Vérification correspondante
        """
        key, _, value_name = raw.partition('|')
        return cls(key=key.strip(), value_name=value_name.strip())

    def __str__(self) -> str:
        return f"{self.key}|{self.value_name}" if self.value_name else self.key


@dataclass(frozen=True)
class ProbeConfig:
    """
    Configuration immuable d'un scan

    Créée une fois par scan et transmise telle quelle à chaque sonde.
    """
    max_concurrency: int = 10
    per_host_timeout: float = 60.0
    detection_methods: Tuple[DetectionMethod, ...] = (
        DetectionMethod.PACKAGE_QUERY,
        DetectionMethod.FILESYSTEM_PATH,
        DetectionMethod.REGISTRY_KEY,
    )
    package_patterns: Tuple[str, ...] = ()
    file_paths: Tuple[str, ...] = ()
    registry_keys: Tuple[RegistryKeyCheck, ...] = ()
    connect_timeout: float = 3.0
    connect_ports: Tuple[int, ...] = (445, 135)
    partial_error_retries: int = 0
    retry_delay: float = 5.0

    def validate(self):
        """
        Valide la configuration avant le démarrage du scan

        Raises:
            ConfigurationError: Liste de toutes les erreurs détectées
        """
        errors = []

        if not isinstance(self.max_concurrency, int) or self.max_concurrency < 1:
            errors.append(f"max_concurrency doit être >= 1 (reçu: {self.max_concurrency})")

        if self.per_host_timeout <= 0:
            errors.append(f"per_host_timeout doit être > 0 (reçu: {self.per_host_timeout})")

        if self.connect_timeout <= 0:
            errors.append(f"connect_timeout doit être > 0 (reçu: {self.connect_timeout})")

        if not self.connect_ports:
            errors.append("Aucun port de connectivité configuré")
        for port in self.connect_ports:
            if not 1 <= port <= 65535:
                errors.append(f"Port de connectivité invalide: {port}")

        if not self.detection_methods:
            errors.append("Aucune méthode de détection configurée")
        if DetectionMethod.NONE in self.detection_methods:
            errors.append("La méthode 'none' ne peut pas être configurée")
        if len(set(self.detection_methods)) != len(self.detection_methods):
            errors.append("Méthode de détection configurée plusieurs fois")

        if DetectionMethod.PACKAGE_QUERY in self.detection_methods:
            if not self.package_patterns:
                errors.append("package_query sélectionné sans motif de nom de paquet")
            for pattern in self.package_patterns:
                try:
                    re.compile(pattern)
                except re.error as e:
                    errors.append(f"Motif de paquet invalide '{pattern}': {e}")

        if DetectionMethod.FILESYSTEM_PATH in self.detection_methods:
            if not self.file_paths:
                errors.append("filesystem_path sélectionné sans chemin candidat")
            for path in self.file_paths:
                if not (ntpath.isabs(path) or os.path.isabs(path)):
                    errors.append(f"Chemin candidat non absolu: {path}")

        if DetectionMethod.REGISTRY_KEY in self.detection_methods:
            if not self.registry_keys:
                errors.append("registry_key sélectionné sans clé candidate")
            for check in self.registry_keys:
                if not check.key:
                    errors.append("Clé de registre vide")

        if self.partial_error_retries < 0:
            errors.append("partial_error_retries doit être >= 0")
        if self.retry_delay < 0:
            errors.append("retry_delay doit être >= 0")

        if errors:
            raise ConfigurationError(errors)


@dataclass(frozen=True)
class HostProbeResult:
    """
    Résultat de la sonde d'un hôte, produit exactement une fois par scan

    Invariants :
    - software_detected implique detection_method != NONE
    - reachable == False implique classification OFFLINE et aucun
      champ optionnel renseigné
    """
    host: HostIdentifier
    reachable: bool
    software_detected: bool = False
    detected_version: Optional[str] = None
    detection_method: DetectionMethod = DetectionMethod.NONE
    install_path: Optional[str] = None
    last_used: Optional[datetime] = None
    classification: Classification = Classification.SUCCESS
    error_detail: Optional[str] = None
    attempts: int = 1
    duration: float = 0.0

    def __post_init__(self):
        if self.software_detected and self.detection_method is DetectionMethod.NONE:
            raise ValueError(f"{self.host}: logiciel détecté sans méthode de détection")
        if not self.reachable:
            if self.classification is not Classification.OFFLINE:
                raise ValueError(f"{self.host}: hôte injoignable classé {self.classification.value}")
            if (self.software_detected or self.detected_version or self.install_path
                    or self.last_used or self.error_detail):
                raise ValueError(f"{self.host}: hôte injoignable avec des champs de détection renseignés")

    @classmethod
    def offline(cls, host: HostIdentifier) -> "HostProbeResult":
        return cls(host=host, reachable=False, classification=Classification.OFFLINE)

    @classmethod
    def access_denied(cls, host: HostIdentifier, detail: str) -> "HostProbeResult":
        return cls(host=host, reachable=True, classification=Classification.ACCESS_DENIED,
                   error_detail=detail)

    @classmethod
    def partial_error(cls, host: HostIdentifier, detail: str) -> "HostProbeResult":
        return cls(host=host, reachable=True, classification=Classification.PARTIAL_ERROR,
                   error_detail=detail)

    @classmethod
    def not_detected(cls, host: HostIdentifier, detail: Optional[str] = None) -> "HostProbeResult":
        return cls(host=host, reachable=True, classification=Classification.SUCCESS,
                   error_detail=detail)

    @classmethod
    def detected(cls, host: HostIdentifier, detection: "Detection",
                 detail: Optional[str] = None) -> "HostProbeResult":
        return cls(
            host=host,
            reachable=True,
            software_detected=True,
            detected_version=detection.version,
            detection_method=detection.method,
            install_path=detection.install_path,
            last_used=detection.last_used,
            classification=Classification.SUCCESS,
            error_detail=detail
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convertit le résultat en dictionnaire sérialisable en JSON

        Returns:
            dict: Résultat avec enums et dates converties en chaînes
        """
        data = asdict(self)
        data['detection_method'] = self.detection_method.value
        data['classification'] = self.classification.value
        data['last_used'] = self.last_used.isoformat() if self.last_used else None
        data['duration'] = round(self.duration, 3)
        return data


@dataclass(frozen=True)
class Detection:
    """Preuve d'installation renvoyée par une méthode de détection"""
    method: DetectionMethod
    version: Optional[str] = None
    install_path: Optional[str] = None
    last_used: Optional[datetime] = None
    evidence: Optional[str] = None


@dataclass(frozen=True)
class PathInfo:
    """Métadonnées d'un fichier distant"""
    path: str
    last_access: Optional[datetime] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class ScanSummary:
    """
    Résumé d'un ensemble de résultats

    Fonction pure de la liste de résultats, jamais persisté seul.
    """
    total: int = 0
    reachable: int = 0
    unreachable: int = 0
    software_detected: int = 0
    success: int = 0
    offline: int = 0
    access_denied: int = 0
    partial_error: int = 0

    @classmethod
    def from_results(cls, results: Iterable[HostProbeResult]) -> "ScanSummary":
        """
        Calcule le résumé d'une liste de résultats

        Args:
            results: Résultats de sonde

        Returns:
            ScanSummary: Compteurs dérivés
        """
        counts = {classification: 0 for classification in Classification}
        total = reachable = detected = 0

        for result in results:
            total += 1
            if result.reachable:
                reachable += 1
            if result.software_detected:
                detected += 1
            counts[result.classification] += 1

        return cls(
            total=total,
            reachable=reachable,
            unreachable=total - reachable,
            software_detected=detected,
            success=counts[Classification.SUCCESS],
            offline=counts[Classification.OFFLINE],
            access_denied=counts[Classification.ACCESS_DENIED],
            partial_error=counts[Classification.PARTIAL_ERROR]
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ScanReport:
    """Résultat final d'un scan remis au collaborateur de rapport"""
    results: List[HostProbeResult]
    summary: ScanSummary
    status: ScanStatus = ScanStatus.COMPLETED
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    missing_hosts: List[HostIdentifier] = field(default_factory=list)
    violations: List[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status is ScanStatus.CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'summary': self.summary.to_dict(),
            'results': [result.to_dict() for result in self.results],
            'missing_hosts': list(self.missing_hosts),
            'violations': list(self.violations)
        }
