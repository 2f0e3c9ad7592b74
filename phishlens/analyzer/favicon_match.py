"""Perceptual-hash fingerprints of known brand favicons."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import imagehash
import yaml
from PIL import Image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrandFingerprint:
    """Favicon hash of a brand plus the domains it legitimately serves from."""

    brand: str
    phash: imagehash.ImageHash
    domains: frozenset[str] = frozenset()


def hash_similarity(a: imagehash.ImageHash, b: imagehash.ImageHash) -> float:
    """Similarity in percent: 100 for identical hashes."""
    diff = a - b
    bits = a.hash.size
    return max(0.0, (bits - diff) / bits * 100.0)


def compute_phash(data: bytes) -> imagehash.ImageHash:
    """Perceptual hash of raw image bytes (ICO, PNG, GIF, ...)."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        return imagehash.phash(image.convert("RGBA").convert("L"))


def load_fingerprints(path: Optional[Path]) -> list[BrandFingerprint]:
    """
    Load brand fingerprints from YAML.

    Expected layout:

        brands:
          - name: PayPal
            domains: [paypal.com]
            phash: "c3c3..."

    Malformed entries are skipped with a warning.
    """
    if not path or not Path(path).exists():
        return []
    try:
        data = yaml.safe_load(Path(path).read_text()) or {}
    except Exception as exc:
        logger.warning(f"Failed to parse favicon fingerprints {path}: {exc}")
        return []

    entries = data.get("brands") if isinstance(data, dict) else None
    fingerprints: list[BrandFingerprint] = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name") or "").strip()
        hashes = entry.get("phash")
        if isinstance(hashes, str):
            hashes = [hashes]
        if not name or not isinstance(hashes, list):
            logger.warning(f"Skipping favicon fingerprint without name/phash: {entry!r}")
            continue
        domains = frozenset(str(d).strip().lower() for d in entry.get("domains") or [] if d)
        for value in hashes:
            try:
                fingerprints.append(
                    BrandFingerprint(brand=name, phash=imagehash.hex_to_hash(str(value)), domains=domains)
                )
            except ValueError:
                logger.warning(f"Skipping invalid phash for {name}: {value!r}")
    return fingerprints


def best_match(
    phash: imagehash.ImageHash, fingerprints: Iterable[BrandFingerprint]
) -> tuple[Optional[BrandFingerprint], float]:
    """Most similar fingerprint and its similarity (first wins on ties)."""
    best: Optional[BrandFingerprint] = None
    best_score = 0.0
    for fp in fingerprints:
        if fp.phash.hash.size != phash.hash.size:
            continue
        score = hash_similarity(phash, fp.phash)
        if score > best_score:
            best, best_score = fp, score
    return best, best_score


def fingerprint_entry(brand: str, image_bytes: bytes, domains: Iterable[str] = ()) -> dict:
    """YAML-ready fingerprint entry for a brand favicon."""
    return {
        "name": brand,
        "domains": sorted({d.strip().lower() for d in domains if d and d.strip()}),
        "phash": str(compute_phash(image_bytes)),
    }
