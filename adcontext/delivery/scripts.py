"""
Scripts evaluated in the consumer.

Payloads travel as compact JSON embedded in a JS string literal and are
parsed consumer-side, so a payload can never break out of the literal.
"""

import json
import re
from typing import Any, Dict, Optional, Tuple

from ..constants import (
    COMPLETION_HOOK,
    DEVICE_SLOT,
    GEO_SLOT,
    METADATA_SLOT,
    MOBILE_SLOT,
)

SLOTS = (MOBILE_SLOT, GEO_SLOT, DEVICE_SLOT, METADATA_SLOT)

_ASSIGN_RE = re.compile(r"window\.(?P<slot>\w+) = JSON\.parse\((?P<literal>\"(?:[^\"\\]|\\.)*\")\);")
_NULL_RE = re.compile(r"^window\.(?P<slot>\w+) = null;$")


def assign_slot_script(slot: str, payload_json: Optional[str]) -> str:
    """Assign a slot from JSON, or to null when there is no payload."""
    if payload_json is None:
        return f"window.{slot} = null;"

    literal = json.dumps(payload_json)
    return (
        f"try {{ window.{slot} = JSON.parse({literal}); }} "
        f"catch(e) {{ window.{slot} = null; console.error('Failed to parse {slot}:', e); }}"
    )


def verify_script() -> str:
    lines = ["console.debug('=== adcontext data check ===');"]
    for slot in SLOTS:
        lines.append(f"console.debug('window.{slot}:', typeof window.{slot}, window.{slot});")
    lines.append(f"console.debug('window.{COMPLETION_HOOK}:', typeof window.{COMPLETION_HOOK});")
    return "\n".join(lines)


def completion_script() -> str:
    """Invoke the completion hook if defined. Evaluates to whether it was found."""
    args = ", ".join(f"window.{slot}" for slot in SLOTS)
    return (
        "(function() {\n"
        f"  if (typeof window.{COMPLETION_HOOK} !== 'function') {{ return false; }}\n"
        f"  try {{ window.{COMPLETION_HOOK}({args}); }}\n"
        f"  catch (e) {{ console.debug('Error calling {COMPLETION_HOOK}:', e.message); }}\n"
        "  return true;\n"
        "})();"
    )


def basic_mobile_script(app_id: Optional[str], idfa: Optional[str]) -> str:
    """Minimal mobile payload for callers that skip the full delivery."""
    payload = json.dumps({"app_id": app_id or "", "idfa_adid": idfa or ""})
    return f"window.{MOBILE_SLOT} = {payload};"


def parse_slot_assignment(script: str) -> Optional[Tuple[str, Optional[Dict[str, Any]]]]:
    """
    Read back (slot, payload) from a script built by assign_slot_script().

    Returns None for any other script.
    """
    match = _NULL_RE.match(script.strip())
    if match:
        return match.group("slot"), None

    match = _ASSIGN_RE.search(script)
    if match:
        return match.group("slot"), json.loads(json.loads(match.group("literal")))

    return None
