"""
Moteur de roster des professeurs

Ce module contient la logique d'appartenance aux années académiques :
- Résolution de l'appartenance d'un professeur à une année
- Cache des rosters par année
- Chargement du roster (métadonnées + affectations) et garde "dernière demande gagne"
- Réconciliation des affectations classe/matières
- Projection de l'emploi du temps d'un professeur
"""
from app.roster_engine.cache import NullRosterCache, RosterCache
from app.roster_engine.loader import RosterLoader, RosterSession, RosterSessionRegistry
from app.roster_engine.membership import YearMetadataState, belongs_to_year, year_metadata_state
from app.roster_engine.reconciler import AssignmentReconciler, Draft, DraftEntry, DraftList
from app.roster_engine.schedule import ScheduleProjector

__all__ = [
    "AssignmentReconciler",
    "Draft",
    "DraftEntry",
    "DraftList",
    "NullRosterCache",
    "RosterCache",
    "RosterLoader",
    "RosterSession",
    "RosterSessionRegistry",
    "ScheduleProjector",
    "YearMetadataState",
    "belongs_to_year",
    "year_metadata_state",
]
