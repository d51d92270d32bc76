"""
Cache mémoire des rosters par année.

Une instance par application (créée dans le lifespan et injectée), sans TTL ni
limite de taille : chaque mutation susceptible de changer le roster d'une année
doit invalider l'entrée correspondante.

Chaque clé porte une version, incrémentée par `delete`/`clear`. Un chargement
relève la version avant de lire le magasin et n'écrit son résultat que si elle
n'a pas bougé entre-temps (`set_if_current`).
"""
from typing import Dict, List, Optional, Tuple

from app.models.firestore_models import ProfessorRow

KEY_PREFIX = "professeurs"

Version = Tuple[int, int]


class RosterCache:
    def __init__(self):
        self._entries: Dict[str, List[ProfessorRow]] = {}
        self._versions: Dict[str, int] = {}
        self._epoch = 0

    @staticmethod
    def key_for(year_id: str, year_label: str) -> str:
        return f"{KEY_PREFIX}:{year_id or year_label or 'all'}"

    def version(self, key: str) -> Version:
        return self._epoch, self._versions.get(key, 0)

    def get(self, key: str) -> Optional[List[ProfessorRow]]:
        return self._entries.get(key)

    def set(self, key: str, rows: List[ProfessorRow]) -> None:
        self._entries[key] = rows

    def set_if_current(self, key: str, rows: List[ProfessorRow], version: Version) -> bool:
        """Écrit `rows` seulement si aucune invalidation n'a touché `key` depuis `version`."""
        if self.version(key) != version:
            return False
        self.set(key, rows)
        return True

    def delete(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._epoch += 1
        self._entries.clear()

    def invalidate_year(self, year_id: str, year_label: str = "") -> None:
        self.delete(self.key_for(year_id, year_label))

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class NullRosterCache(RosterCache):
    """Ne conserve rien : chaque chargement repasse par le magasin."""

    def set(self, key: str, rows: List[ProfessorRow]) -> None:
        return None
