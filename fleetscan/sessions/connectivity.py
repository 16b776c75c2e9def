"""
Test de connectivité TCP

Un hôte est considéré joignable si l'un des ports configurés accepte
une connexion dans le délai imparti.
"""

import socket
import time
from typing import Iterable, Optional

from .base import ConnectivityChecker
from ..core.logger import get_logger


class TcpConnectivityChecker(ConnectivityChecker):
    """
    Testeur de connectivité par connexion TCP (équivalent ping sans ICMP)
    """

    def __init__(self, ports: Iterable[int] = (445, 135), logger=None):
        self.ports = tuple(ports)
        self.logger = logger or get_logger('FleetScan.connectivity')

    def is_reachable(self, host: str, timeout: float) -> bool:
        deadline = time.monotonic() + timeout

        for port in self.ports:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break

            if self._check_port(host, port, remaining):
                self.logger.debug(f"{host}: port {port} ouvert")
                return True

        self.logger.debug(f"{host}: aucun port joignable parmi {list(self.ports)}")
        return False

    def _check_port(self, host: str, port: int, timeout: float) -> bool:
        """
        Teste un port TCP

        Args:
            host: Hôte cible
            port: Port TCP
            timeout: Délai maximum en secondes

        Returns:
            bool: True si la connexion a abouti
        """
        sock: Optional[socket.socket] = None
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
            return True
        except OSError as e:
            self.logger.debug(f"{host}:{port} injoignable: {e}")
            return False
        finally:
            if sock is not None:
                sock.close()
