import hashlib
from typing import Iterable, Tuple

import base58


def tron_base58_to_hex(addr_b58: str) -> str:
    try:
        raw = base58.b58decode(addr_b58)
    except ValueError:
        raise ValueError("Dirección TRON con caracteres base58 inválidos")
    if len(raw) != 25:
        raise ValueError("Longitud de dirección TRON inválida")
    body, checksum = raw[:-4], raw[-4:]
    if hashlib.sha256(hashlib.sha256(body).digest()).digest()[:4] != checksum:
        raise ValueError("TRON address checksum inválido")
    if body[0] != 0x41:
        raise ValueError("Prefijo TRON inválido (0x41)")
    return body.hex()


def validate_tron_address(addr: str) -> str:
    """Devuelve la dirección limpia o lanza ValueError."""
    addr = (addr or "").strip()
    if not addr.startswith("T") or len(addr) != 34:
        raise ValueError('Dirección TRON inválida: debe empezar con "T" y tener 34 caracteres.')
    tron_base58_to_hex(addr)
    return addr


def merge_addresses(*groups: Iterable[str]) -> Tuple[str, ...]:
    """Unión de colecciones de direcciones, sensible a mayúsculas, en orden de primera aparición."""
    seen = {}
    for group in groups:
        for a in group or ():
            if a and a not in seen:
                seen[a] = None
    return tuple(seen)
