"""
Module Core - Moteur de scan de parc

Ce module contient :
- Le modèle de données et les erreurs
- La sonde par hôte et le pool de workers
- La progression et l'agrégation des résultats
- La configuration, le logging, la planification et l'envoi
"""
