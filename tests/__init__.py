"""stackctl test suite.

- startup/: readiness policies, polling, bring-up and validation
- runtime/: docker compose adapter with subprocess patched out
- fakes/: in-memory container runtime
"""

from __future__ import annotations
