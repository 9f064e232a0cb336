"""
Default protocol catalogs.

These catalogs are seeded into an empty state store and restored when a
protocol namespace is reset.
"""

from typing import Any, Dict, List

from ..schemas.protocol import Protocol

DEFAULT_VACCINATION_PROTOCOLS: List[Dict[str, Any]] = [
    {
        "name": "DAPP (DHPP)",
        "species": "Chien",
        "product_type": "core",
        "target_description": "Maladie de Carré, Adénovirus, Parvovirus, Parainfluenza",
        "manufacturer": "Zoetis",
        "description": "Vaccination essentielle du chien",
        "intervals": [
            {"offset_days": 0, "label": "J0 (première injection)"},
            {"offset_days": 21, "label": "21 jours (2e injection)"},
            {"offset_days": 42, "label": "42 jours (3e injection)"},
            {"offset_days": 365, "label": "1 an (rappel)"},
        ],
    },
    {
        "name": "Rage (Rabies)",
        "species": "Chien",
        "product_type": "rabies",
        "target_description": "Rage",
        "manufacturer": "Merial",
        "description": "Vaccination antirabique selon la législation locale",
        "intervals": [
            {"offset_days": 0, "label": "À l'âge de 12 semaines minimum"},
            {"offset_days": 365, "label": "1 an (rappel)"},
        ],
    },
    {
        "name": "RCP (FVRCP)",
        "species": "Chat",
        "product_type": "core",
        "target_description": "Calicivirose, Panleucopénie, Rhinotrachéite virale féline",
        "manufacturer": "Virbac",
        "description": "Vaccination essentielle du chat",
        "intervals": [
            {"offset_days": 0, "label": "6 semaines"},
            {"offset_days": 21, "label": "12 semaines"},
            {"offset_days": 28, "label": "1 an"},
        ],
    },
    {
        "name": "Rage (Rabies)",
        "species": "Chat",
        "product_type": "rabies",
        "target_description": "Rage",
        "manufacturer": "Merial",
        "description": "Vaccination antirabique selon réglementation voyage",
        "intervals": [
            {"offset_days": 365, "label": "1 an"},
            {"offset_days": 730, "label": "2 ans"},
        ],
    },
]

DEFAULT_ANTIPARASITIC_PROTOCOLS: List[Dict[str, Any]] = [
    {
        "name": "Frontline Combo Spot-On",
        "species": "Chien",
        "product_type": "flea_tick",
        "target_description": "Puces, Tiques, Poux broyeurs",
        "manufacturer": "Boehringer Ingelheim",
        "description": "Protection contre puces et tiques",
        "intervals": [
            {"offset_days": 0, "label": "Application initiale"},
            {"offset_days": 28, "label": "Rappel mensuel"},
        ],
    },
    {
        "name": "NexGard Spectra",
        "species": "Chien",
        "product_type": "combined",
        "target_description": "Puces, Tiques, Vers du cœur, Vers ronds, Vers plats",
        "manufacturer": "Boehringer Ingelheim",
        "description": "Protection combinée externe et interne mensuelle",
        "intervals": [
            {"offset_days": 0, "label": "Première dose"},
            {"offset_days": 30, "label": "Dose mensuelle"},
        ],
    },
    {
        "name": "Drontal Plus",
        "species": "Chien",
        "product_type": "worming",
        "target_description": "Vers ronds, Vers plats, Ankylostomes, Trichures",
        "manufacturer": "Bayer",
        "description": "Vermifugation large spectre",
        "intervals": [
            {"offset_days": 0, "label": "Première vermifugation"},
            {"offset_days": 90, "label": "Rappel trimestriel"},
            {"offset_days": 180, "label": "Rappel semestriel"},
        ],
    },
    {
        "name": "Frontline Combo Chat",
        "species": "Chat",
        "product_type": "flea_tick",
        "target_description": "Puces, Tiques",
        "manufacturer": "Boehringer Ingelheim",
        "description": "Protection mensuelle contre puces et tiques chez le chat",
        "intervals": [
            {"offset_days": 0, "label": "Application initiale"},
            {"offset_days": 28, "label": "Rappel mensuel"},
        ],
    },
    {
        "name": "Stronghold Plus",
        "species": "Chat",
        "product_type": "combined",
        "target_description": "Puces, Vers du cœur, Vers ronds, Gale des oreilles",
        "manufacturer": "Zoetis",
        "description": "Protection combinée mensuelle pour chats",
        "intervals": [
            {"offset_days": 0, "label": "Application initiale"},
            {"offset_days": 30, "label": "Application mensuelle"},
        ],
    },
]


def default_vaccination_protocols() -> List[Protocol]:
    """Build fresh vaccination protocols with new ids."""
    return [Protocol(**data) for data in DEFAULT_VACCINATION_PROTOCOLS]


def default_antiparasitic_protocols() -> List[Protocol]:
    """Build fresh antiparasitic protocols with new ids."""
    return [Protocol(**data) for data in DEFAULT_ANTIPARASITIC_PROTOCOLS]
