# ==============================
# Template Provider Harness
# ==============================
"""
Render a few strings through a mustache-style provider, synchronously and through callbacks.

Usage examples:
  python scripts/harness.py
  python scripts/harness.py --repo-root . --record '{"test": "from the command line"}'

Notes:
- Settings are loaded from <repo_root>/configs/*.yaml and PICT__* env vars.
- Missing addresses render as empty brackets (this provider's own formatting choice).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pict_template.config.loader import load_settings
from pict_template.host.environment import Pict
from pict_template.logging.logger import bootstrap_logger
from pict_template.providers.base import PictTemplateExpression


class HarnessTemplate(PictTemplateExpression):
    template_hash = "HarnessMustache"

    def __init__(self, pict: Any, options: Optional[dict] = None, service_hash: Optional[str] = None) -> None:
        super().__init__(pict, options, service_hash)
        self.add_pattern("{{", "}}")

    def render(self, template_hash, record, context_array=None, scope=None, state=None) -> str:
        value = self.resolve_state_from_address(template_hash, record, context_array)
        return f"mustache[{value if value else ''}]"


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Template provider harness")
    parser.add_argument("--repo-root", default=str(ROOT))
    parser.add_argument("--record", default=None, help="JSON object used as Record")
    args = parser.parse_args(argv)

    settings, _ = load_settings(repo_root=args.repo_root)
    bootstrap_logger(settings)

    pict = Pict.from_settings(settings)
    pict.add_template(HarnessTemplate)

    record = json.loads(args.record) if args.record else {"test": "test"}

    pict.log.info(pict.parse_template("The new style is a {{Record.test}}", record))

    pict.parse_template(
        "The new style is a {{Record.test}}",
        {"test": "asynctest"},
        lambda error, result: pict.log.info(result),
    )

    pict.parse_template(
        "The new style is a {{Record.test}} with context like {{Context[0].base}}",
        {"test": "asynctest"},
        lambda error, result: pict.log.info(result),
        [{"base": "foundational"}],
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
