"""
Noyau transverse DentFlow : configuration, horloge, sécurité JWT, authentification.
"""
