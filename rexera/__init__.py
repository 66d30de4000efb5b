"""
Rexera Workflow API
===================

Backend de gestion des workflows immobiliers Rexera:
- Workflows (payoff, HOA, recherche de liens municipaux)
- Exécutions de tâches (agents IA et opérateurs HIL) avec suivi SLA
- Contreparties (prêteurs, HOA, municipalités...)
- Notes HIL, notifications, journal d'audit
- Intégration n8n (déclenchement + webhook de retour)
"""

__version__ = "1.0.0"
__author__ = "Rexera"
