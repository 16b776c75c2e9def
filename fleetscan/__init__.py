"""
FleetScan - Détection d'un logiciel sur un parc de machines

Ce package sonde en parallèle une liste d'hôtes pour déterminer si un
logiciel y est installé (inventaire des paquets, fichiers, registre) et
classe les hôtes injoignables ou inaccessibles.
"""

__version__ = "1.0.0"

from .core.config import ScanConfig
from .core.logger import ScanLogger
from .core.models import ProbeConfig, HostProbeResult, ScanSummary, ScanReport
from .core.scanner import FleetScanner

__all__ = ['ScanConfig', 'ScanLogger', 'ProbeConfig', 'HostProbeResult', 'ScanSummary',
           'ScanReport', 'FleetScanner']
