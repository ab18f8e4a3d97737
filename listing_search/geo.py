"""Approximate map positions for Costa del Sol areas and towns."""
import hashlib
import math
from typing import Dict, Optional, Tuple

LatLng = Tuple[float, float]

# Area / town centre coordinates
AREA_COORDINATES: Dict[str, LatLng] = {
    "Estepona Centro": (36.4285, -5.1451),
    "Marbella Centro": (36.5098, -4.8869),
    "Nueva Andalucía": (36.4944, -4.9402),
    "Fuengirola Centro": (36.5392, -4.6254),
    "Benahavís Centro": (36.5330, -5.0359),
    "Mijas Centro": (36.5924, -4.6386),
    "Benalmadena Centro": (36.5988, -4.5162),
    "San Pedro de Alcántara": (36.4875, -4.9969),
    "The Golden Mile": (36.5024, -4.9155),
    "Puerto Banús": (36.4842, -4.9517),
    "Elviria": (36.4888, -4.8067),
    "Calahonda": (36.4775, -4.7095),
    "Manilva Centro": (36.3433, -5.2461),
    "Alhaurín el Grande Centro": (36.6326, -4.6868),
    "Riviera del Sol": (36.4742, -4.7442),
    "La Cala de Mijas": (36.4913, -4.6854),
    "Mijas Costa": (36.5166, -4.6321),
    "Benalmadena Costa": (36.5891, -4.5433),
    "La Duquesa": (36.3575, -5.2189),
    "New Golden Mile": (36.4724, -4.9755),
    "Torremolinos Centro": (36.6204, -4.4996),
    "Casares Centro": (36.4444, -5.2758),
    "Ojén Centro": (36.5580, -4.8656),
    "Istán Centro": (36.6127, -4.9367),
    "Cancelada": (36.4691, -5.0107),
    "Guadalmina": (36.4816, -5.0317),
    "Bahía de Marbella": (36.4751, -4.9285),
    "Cabopino": (36.4744, -4.7442),
    "Calypso": (36.4811, -4.7058),
    "El Paraiso": (36.4669, -5.0169),
    "Las Chapas": (36.4838, -4.7915),
    "Sierra Blanca": (36.5141, -4.8735),
    "Artola": (36.4744, -4.7442),
    "Bahía Dorada": (36.4744, -4.7442),
    "Guadalmansa": (36.4691, -5.0107),
    "Hacienda las Chapas": (36.4838, -4.7915),
    "Los Monteros": (36.4888, -4.8067),
    "Río Real": (36.4888, -4.8067),
    "Saladillo": (36.4691, -5.0107),
    "Sotogrande": (36.2935, -5.2770),
    "Torrequebrada": (36.5891, -4.5433),
    "Torreblanca": (36.5392, -4.6254),
    "La Carihuela": (36.6137, -4.5014),
    "Montemar": (36.5988, -4.5162),
    "Arroyo de la Miel": (36.6014, -4.5314),
    "Miraflores": (36.4775, -4.7095),
    "La Cala del Moral": (36.7144, -4.3306),
    "Rincón de la Victoria": (36.7118, -4.2725),
    "Nerja": (36.7572, -3.8749),
    "Torrox": (36.7328, -3.9553),
    "Antequera": (37.0179, -4.5585),
}

# ~1 km expressed in degrees
JITTER_RADIUS_DEG = 0.009


def area_center(name: Optional[str]) -> Optional[LatLng]:
    if not name:
        return None
    return AREA_COORDINATES.get(name.strip())


def jitter(center: LatLng, seed: str) -> LatLng:
    """
    Spread markers that share an area centre over a ~1 km disc. The offset
    is derived from ``seed`` so the same listing always lands on the same spot.
    """
    digest = hashlib.sha1(seed.encode("utf-8")).digest()
    angle = int.from_bytes(digest[:4], "big") / 0xFFFFFFFF * 2 * math.pi
    distance = int.from_bytes(digest[4:8], "big") / 0xFFFFFFFF * JITTER_RADIUS_DEG
    return (center[0] + distance * math.cos(angle), center[1] + distance * math.sin(angle))


def lookup(name: Optional[str], seed: str) -> Optional[LatLng]:
    center = area_center(name)
    return jitter(center, seed) if center else None
