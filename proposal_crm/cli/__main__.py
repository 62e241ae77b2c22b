# proposal_crm/cli/__main__.py
import sys, json
from pathlib import Path

from pydantic import ValidationError

from proposal_crm.core.formatting import format_currency, format_percent
from proposal_crm.core.validation import ProposalValidationError
from proposal_crm.server.api.proposals import _build_proposal, _serialize_proposal
from proposal_crm.server.schemas.proposal import ProposalIn, ProposalOut
from proposal_crm.server.settings.config import settings

USAGE = """Usage:
  python -m proposal_crm.cli summarize <proposal.json> [--symbol=$CURRENCY_SYMBOL]
  python -m proposal_crm.cli recalculate <proposal.json> [--refresh-lines] [--out=out.json]

Examples:
  python -m proposal_crm.cli summarize examples/proposal.json
  python -m proposal_crm.cli recalculate examples/proposal.json --out=recalculated.json
"""

COMMANDS = ("summarize", "recalculate")

SUMMARY_ROWS = [
    ("Products", "subtotal_products"),
    ("Engineering", "subtotal_engineering"),
    ("Expenses", "subtotal_expenses"),
    ("Tax base", "tax_base"),
    ("Custom taxes", "subtotal_taxes"),
    ("Total", "total_amount"),
    ("Total cost", "total_cost"),
    ("Gross profit", "gross_profit"),
]

def _load_payload(p: str) -> ProposalIn:
    try:
        data = json.loads(Path(p).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Error reading JSON '{p}': {e}", file=sys.stderr)
        sys.exit(2)
    try:
        return ProposalIn.model_validate(data)
    except ValidationError as e:
        print(f"Invalid proposal in '{p}':\n{e}", file=sys.stderr)
        sys.exit(2)

def render_summary(summary, symbol: str = None) -> str:
    if symbol is None:
        symbol = settings.currency_symbol
    width = max(len(label) for label, _ in SUMMARY_ROWS) + 2
    lines = [
        f"{label:<{width}}{format_currency(getattr(summary, key), symbol=symbol):>16}"
        for label, key in SUMMARY_ROWS
    ]
    lines.append(f"{'Margin':<{width}}{format_percent(summary.profit_margin):>16}")
    return "\n".join(lines)

def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    if len(argv) < 2:
        print(USAGE, file=sys.stderr); sys.exit(1)

    cmd = argv[0].lower()
    if cmd not in COMMANDS:
        print(USAGE, file=sys.stderr); sys.exit(1)
    proposal_path = argv[1]

    out_path = None
    symbol = settings.currency_symbol
    refresh_lines = False
    for arg in argv[2:]:
        if arg.startswith("--out="):
            out_path = arg.split("=", 1)[1]
        elif arg.startswith("--symbol="):
            symbol = arg.split("=", 1)[1]
        elif arg == "--refresh-lines":
            refresh_lines = True

    payload = _load_payload(proposal_path)
    try:
        proposal = _build_proposal(payload)
    except ProposalValidationError as e:
        print(f"Invalid proposal: {e}", file=sys.stderr)
        sys.exit(2)

    summary = proposal.recompute(refresh_lines=refresh_lines or payload.refresh_lines)

    if cmd == "summarize":
        print(render_summary(summary, symbol=symbol))
        return 0

    # recalculate
    out = ProposalOut.model_validate(_serialize_proposal(proposal, summary)).model_dump_json(indent=2)
    if out_path:
        Path(out_path).write_text(out, encoding="utf-8")
    else:
        sys.stdout.write(out + "\n")
    return 0

if __name__ == "__main__":
    main()
