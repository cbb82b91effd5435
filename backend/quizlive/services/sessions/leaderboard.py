from typing import Dict, List

from .state import Player


def _ranked(roster: Dict[str, Player]) -> List[Player]:
    # sorted() is stable: equal scores keep roster (join) order
    return sorted(roster.values(), key=lambda p: p.score, reverse=True)


def project(roster: Dict[str, Player]) -> List[dict]:
    return [{'name': p.display_name, 'score': p.score} for p in _ranked(roster)]


def project_final(roster: Dict[str, Player]) -> List[dict]:
    return [
        {'position': i, 'name': p.display_name, 'score': p.score}
        for i, p in enumerate(_ranked(roster), start=1)
    ]
