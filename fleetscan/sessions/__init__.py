"""
Package des transports de session

- Contrats (fabrique de sessions, session, test de connectivité)
- Test de connectivité TCP
- Session locale et session registre distant Windows
"""
