"""
Interface web locale de suivi des scans
"""
