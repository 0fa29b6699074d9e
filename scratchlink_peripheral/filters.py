from typing import Any, Dict, Iterable, Optional


def _passes(identity, flt: Dict[str, Any]) -> bool:
    if not isinstance(flt, dict):
        return False

    name = flt.get("name")
    if name is not None and name != identity.name:
        return False

    prefix = flt.get("namePrefix")
    if prefix is not None and not (isinstance(prefix, str) and identity.name.startswith(prefix)):
        return False

    services = flt.get("services")
    if services is not None:
        if not isinstance(services, (list, tuple)):
            return False
        if not all(isinstance(s, (int, str)) and s in identity.service_ids for s in services):
            return False

    # manufacturerData is accepted but never constrains the match
    return True


def matches(identity, filters: Optional[Iterable[Dict[str, Any]]]) -> bool:
    """True if ``identity`` passes every filter (AND, not OR).

    An empty or missing filter list always matches; a malformed filter never
    does.
    """
    if filters is None:
        return True
    if not isinstance(filters, (list, tuple)):
        return False
    return all(_passes(identity, flt) for flt in filters)
