import json
import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

USDT_CONTRACT = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"  # Tether USDT oficial (TRC20)

# símbolo protegido -> contrato canónico
PROTECTED_TOKENS: Mapping[str, str] = MappingProxyType({
    "USDT": USDT_CONTRACT,
    "TETHER": USDT_CONTRACT,
})

DEFAULT_KNOWN_ENTITIES_PATH = Path(__file__).with_name("known_entities.json")


def load_known_entities(path: Optional[Path] = None) -> Mapping[str, str]:
    """Carga la whitelist de exchanges (dirección -> etiqueta) desde un objeto JSON.

    La ruta por defecto es ``KNOWN_ENTITIES_PATH`` o el ``known_entities.json`` incluido.
    Lanza ``ValueError`` si el archivo no es un objeto plano de strings.
    """
    if path is None:
        path = Path(os.getenv("KNOWN_ENTITIES_PATH") or DEFAULT_KNOWN_ENTITIES_PATH)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: se esperaba un objeto JSON address -> label")
    for addr, label in raw.items():
        if not isinstance(label, str) or not addr:
            raise ValueError(f"{path}: entrada inválida {addr!r}")
    return MappingProxyType(dict(raw))


@lru_cache(maxsize=1)
def default_registry() -> Mapping[str, str]:
    return load_known_entities()
