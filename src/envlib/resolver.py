"""Variable substitution for raw env values.

Values may reference other variables as `${NAME}` or `$NAME`, e.g.::

    API_HOST=example.com
    API_URL=https://${API_HOST}/v1

References are looked up in the entries ingested so far, then in the process
environment. Unknown references are left as written. Substitution is a single
pass over the raw text, so a reference can only see keys defined earlier in the
file (or in a file loaded before it).
"""

from __future__ import annotations

import os
import re
from typing import Any, Callable, Mapping, Optional

Lookup = Callable[[str], Optional[str]]

_VAR_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


class VariableResolver:
    def __init__(self, lookup: Optional[Lookup] = None):
        # Bind lazily so monkeypatched os.environ is honoured.
        self.lookup: Lookup = lookup or (lambda name: os.environ.get(name))

    def resolve(self, raw: str, scope: Mapping[str, Any]) -> str:
        def _replace(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2)
            if name in scope:
                return str(scope[name])
            env_value = self.lookup(name)
            if env_value is not None:
                return env_value
            return match.group(0)

        return _VAR_RE.sub(_replace, raw)


def resolve(raw: str, scope: Mapping[str, Any], lookup: Optional[Lookup] = None) -> str:
    return VariableResolver(lookup).resolve(raw, scope)
