"""Extraction — natural-language text to structured RFP / proposal / comparison data.

Purpose:
  One narrow interface, ``Extractor.extract(kind, inputs) -> dict``, with a
  Claude-backed implementation and a deterministic regex heuristic that
  needs no network. ``build_extractor`` picks the implementation from
  configuration; in ``auto`` mode Claude is tried first and the heuristic
  takes over whenever Claude fails or returns something unusable.

Kinds and inputs:
  - "rfp":        {"text": str}
  - "proposal":   {"subject": str, "body": str}
  - "comparison": {"proposals": [projection, ...], "rfp": {budget, delivery_date,
                   payment_terms, warranty_period}}

Business Rules:
  - Every implementation raises ExtractionError instead of returning junk
  - Output keys match the Claude schemas below regardless of implementation
  - The heuristic never guesses a field it cannot see in the text (None instead)
  - Heuristic price score is 100 - price/budget*100, clamped to [0, 100]

Called by: services/rfp_service.py, services/proposal_service.py,
           services/comparison_service.py, dependencies.py
Depends on: utils/claude_client.py, config.py
"""

import json
import re
from datetime import date, timedelta

from loguru import logger
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import ExtractionError
from ..schemas.extraction import ComparisonExtraction, ProposalExtraction, RFPExtraction
from ..utils import safe_float, safe_int
from ..utils.claude_client import claude_structured, safe_json_parse

RFP = "rfp"
PROPOSAL = "proposal"
COMPARISON = "comparison"
KINDS = (RFP, PROPOSAL, COMPARISON)

HEURISTIC_TERMS_SCORE = 70.0
HEURISTIC_COMPLETENESS_SCORE = 70.0

# ── Structured Output schemas ─────────────────────────────────────────

RFP_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Clear, concise RFP title"},
        "description": {"type": "string", "description": "Full description of what is procured"},
        "budget": {"type": ["number", "null"], "description": "Total budget, number only"},
        "deadline": {"type": ["string", "null"], "description": "Proposal due date, YYYY-MM-DD"},
        "delivery_date": {"type": ["string", "null"], "description": "Delivery date, YYYY-MM-DD"},
        "delivery_days": {
            "type": ["integer", "null"],
            "description": "Delivery in N days from today, when no absolute date is given",
        },
        "payment_terms": {"type": ["string", "null"], "description": 'e.g. "net 30"'},
        "warranty_period": {"type": ["string", "null"], "description": 'e.g. "1 year"'},
        "requirements": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "item": {"type": "string"},
                    "quantity": {"type": ["integer", "null"]},
                    "specifications": {"type": ["string", "null"]},
                },
                "required": ["item"],
            },
        },
    },
    "required": ["title", "description", "requirements"],
}

PROPOSAL_SCHEMA = {
    "type": "object",
    "properties": {
        "total_price": {"type": ["number", "null"]},
        "line_items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "item": {"type": "string"},
                    "quantity": {"type": ["integer", "null"]},
                    "unit_price": {"type": ["number", "null"]},
                    "total_price": {"type": ["number", "null"]},
                },
                "required": ["item"],
            },
        },
        "payment_terms": {"type": ["string", "null"]},
        "warranty_period": {"type": ["string", "null"]},
        "delivery_date": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "additional_notes": {"type": ["string", "null"]},
    },
    "required": ["line_items"],
}

COMPARISON_SCHEMA = {
    "type": "object",
    "properties": {
        "proposals": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "overall_score": {"type": "number"},
                    "price_score": {"type": "number"},
                    "terms_score": {"type": "number"},
                    "completeness_score": {"type": "number"},
                    "recommendation_reason": {"type": "string"},
                },
                "required": ["id", "overall_score", "price_score", "terms_score",
                             "completeness_score", "recommendation_reason"],
            },
        },
        "best_proposal_id": {"type": "integer"},
        "summary": {"type": "string"},
        "key_differences": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["proposals", "best_proposal_id", "summary", "key_differences"],
}

RFP_SYSTEM = (
    "You are a procurement assistant that converts natural-language purchase needs "
    "into structured RFP data. Use null for anything the request does not state."
)
PROPOSAL_SYSTEM = (
    "You are a procurement assistant that extracts structured data from vendor "
    "proposal emails. Use null for anything the email does not state."
)
COMPARISON_SYSTEM = (
    "You are a procurement analyst comparing vendor proposals for one RFP. "
    "Score every proposal 0-100 on price (lower is better within budget), payment "
    "and warranty terms alignment, and completeness against the requirements."
)


class Extractor:
    """Interface: structured data out of free text."""

    name = "base"

    async def extract(self, kind: str, inputs: dict) -> dict:
        raise NotImplementedError


# ── Claude implementation ─────────────────────────────────────────────


class ClaudeExtractor(Extractor):
    name = "claude"

    async def extract(self, kind: str, inputs: dict) -> dict:
        if kind == RFP:
            prompt = (
                f"Today is {date.today().isoformat()}.\n"
                f"Convert this procurement request into a structured RFP:\n\n{inputs['text']}"
            )
            result = await claude_structured(
                prompt, RFP_SCHEMA, system=RFP_SYSTEM, model_tier="smart", temperature=0.3
            )
        elif kind == PROPOSAL:
            prompt = (
                f"Email Subject: {inputs.get('subject') or ''}\n\n"
                f"Email Body:\n{(inputs.get('body') or '')[:6000]}"
            )
            result = await claude_structured(
                prompt, PROPOSAL_SCHEMA, system=PROPOSAL_SYSTEM, model_tier="fast"
            )
        elif kind == COMPARISON:
            rfp = inputs.get("rfp") or {}
            prompt = (
                "RFP Details:\n"
                f"- Budget: {rfp.get('budget') or 'Not specified'}\n"
                f"- Delivery Required: {rfp.get('delivery_date') or 'Not specified'}\n"
                f"- Payment Terms Required: {rfp.get('payment_terms') or 'Not specified'}\n"
                f"- Warranty Required: {rfp.get('warranty_period') or 'Not specified'}\n\n"
                f"Proposals:\n{json.dumps(inputs.get('proposals') or [], indent=2, default=str)}"
            )
            result = await claude_structured(
                prompt,
                COMPARISON_SCHEMA,
                system=COMPARISON_SYSTEM,
                model_tier="smart",
                max_tokens=2048,
                temperature=0.3,
                timeout=60,
            )
        else:
            raise ExtractionError(f"Unknown extraction kind: {kind}")

        if not isinstance(result, dict):
            raise ExtractionError(f"Claude returned no usable {kind} data")
        result = _decode_nested(result)
        check_output(kind, result, inputs)
        return result


def _decode_nested(result: dict) -> dict:
    """Tool input occasionally carries arrays as JSON strings; decode them."""
    for key in ("requirements", "line_items", "proposals", "key_differences"):
        value = result.get(key)
        if isinstance(value, str):
            parsed = safe_json_parse(value)
            result[key] = parsed if isinstance(parsed, list) else []
    return result


_OUTPUT_MODELS = {
    RFP: RFPExtraction,
    PROPOSAL: ProposalExtraction,
    COMPARISON: ComparisonExtraction,
}


def check_output(kind: str, result: dict, inputs: dict) -> None:
    """Raise ExtractionError when the model's output has the wrong shape."""
    try:
        parsed = _OUTPUT_MODELS[kind].model_validate(result)
    except ValidationError as e:
        raise ExtractionError(
            f"Claude returned malformed {kind} data ({e.error_count()} field errors)"
        ) from e

    if kind == COMPARISON:
        expected = [safe_int(p.get("id")) for p in inputs.get("proposals") or []]
        missing = parsed.missing_ids([pid for pid in expected if pid is not None])
        if missing:
            raise ExtractionError(f"Claude comparison left proposals {missing} unscored")


# ── Heuristic implementation ──────────────────────────────────────────

_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)\s*([kKmM])?\b"
_MONEY = re.compile(r"\$\s?" + _AMOUNT)
_BUDGET = re.compile(r"budget\D{0,20}?\$?\s?" + _AMOUNT, re.IGNORECASE)
_NET_TERMS = re.compile(r"\bnet\s*-?\s*(\d{1,3})\b", re.IGNORECASE)
_PAYMENT_LABEL = re.compile(r"payment\s*terms?\s*[:\-]\s*([^\n.;]+)", re.IGNORECASE)
_WARRANTY_LABEL = re.compile(r"warranty(?:\s+period)?\s*[:\-]\s*([^\n.;]+)", re.IGNORECASE)
_WARRANTY_INLINE = re.compile(
    r"(\d{1,2})[\s-]*(year|yr|month)s?\s+(?:of\s+)?warranty"
    r"|warranty\s+(?:of\s+|for\s+)?(\d{1,2})[\s-]*(year|yr|month)s?",
    re.IGNORECASE,
)
_DELIVERY_DAYS = re.compile(
    r"(?:deliver\w*|ship\w*|within)\W+(?:in\s+|within\s+)?(\d{1,4})\s*(day|week)s?",
    re.IGNORECASE,
)
_DELIVERY_DATE = re.compile(
    r"deliver\w*\W+(?:by\s+|on\s+|before\s+)?(\d{4}-\d{2}-\d{2})", re.IGNORECASE
)
_DEADLINE = re.compile(
    r"(?:deadline|due|respond\s+by|responses?\s+by|submit\w*\s+by)\W+(?:by\s+|on\s+)?(\d{4}-\d{2}-\d{2})",
    re.IGNORECASE,
)
_DURATIONS = re.compile(r"\b\d+\s*(?:days?|weeks?|months?|years?|yrs?|hours?)\b", re.IGNORECASE)
_QTY_ITEM = re.compile(r"(?<![\w$.,])(\d{1,6})\s+(?:x\s+)?([A-Za-z][\w\-]*)(.*)")
_LINE_ITEM = re.compile(
    r"^\s*(?:[-*•]\s*)?(\d{1,6})\s*x?\s+(.+?)\s*[-–:@]\s*\$\s?(\d[\d,]*(?:\.\d+)?)"
    r"\s*(?:each|ea|per\s+unit|/\s*unit|/\s*ea)?\s*(?:=\s*\$\s?(\d[\d,]*(?:\.\d+)?))?",
    re.IGNORECASE,
)
_TOTAL = re.compile(
    r"\btotal(?:\s+(?:price|cost|amount|quote))?\s*[:=]?\s*\$\s?(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE
)
_NOTES = re.compile(r"(?:additional\s+)?(?:notes?|terms\s+and\s+conditions)\s*:\s*([^\n]+)", re.IGNORECASE)

_UNIT_WORDS = {
    "day", "days", "week", "weeks", "month", "months", "year", "years", "yr", "yrs",
    "hour", "hours", "gb", "tb", "mb", "inch", "inches", "percent", "am", "pm",
}
_COUNT_WORDS = {"units", "unit", "pieces", "piece", "pcs", "nos", "sets", "set"}
_SPEC_LEAD = re.compile(r"^(?:(?:with|featuring|having|of)\b|[-:])\s*", re.IGNORECASE)


def _amount(number: str, suffix: str | None) -> float | None:
    value = safe_float(number)
    if value is None:
        return None
    if suffix and suffix.lower() == "k":
        value *= 1_000
    elif suffix and suffix.lower() == "m":
        value *= 1_000_000
    return value


def _plural(n: int, unit: str) -> str:
    unit = "year" if unit.lower().startswith("y") else "month"
    return f"{n} {unit}" + ("s" if n != 1 else "")


def _days(n: str, unit: str) -> int:
    return int(n) * (7 if unit.lower().startswith("w") else 1)


def _first_money(text: str) -> float | None:
    m = _MONEY.search(text)
    return _amount(m.group(1), m.group(2)) if m else None


def _payment_terms(text: str) -> str | None:
    m = _PAYMENT_LABEL.search(text)
    if m:
        return m.group(1).strip()
    m = _NET_TERMS.search(text)
    return f"net {m.group(1)}" if m else None


def _warranty(text: str) -> str | None:
    m = _WARRANTY_LABEL.search(text)
    if m:
        return m.group(1).strip()
    m = _WARRANTY_INLINE.search(text)
    if not m:
        return None
    n, unit = (m.group(1), m.group(2)) if m.group(1) else (m.group(3), m.group(4))
    return _plural(int(n), unit)


def _requirements(text: str) -> list[dict]:
    """Pull "<qty> <item> [with <specs>]" phrases out of a request."""
    cleaned = _MONEY.sub(" ", text)
    cleaned = _NET_TERMS.sub(" ", cleaned)
    cleaned = _DURATIONS.sub(" ", cleaned)

    requirements = []
    for clause in re.split(r"[,;\n]|\.\s|\s+and\s+|\s+plus\s+", cleaned):
        m = _QTY_ITEM.search(clause)
        if not m:
            continue
        qty, word, rest = int(m.group(1)), m.group(2), m.group(3).strip(" .")
        if word.lower() in _UNIT_WORDS:
            continue
        if word.lower() in _COUNT_WORDS and rest.lower().startswith("of "):
            word, rest = rest[3:].strip(), ""
        specs = _SPEC_LEAD.sub("", rest).strip()
        requirements.append({
            "item": word,
            "quantity": qty,
            "specifications": specs or None,
        })
    return requirements


def parse_rfp_text(text: str) -> dict:
    """Regex fallback for the "rfp" extraction kind."""
    text = text or ""
    m = _BUDGET.search(text)
    budget = _amount(m.group(1), m.group(2)) if m else _first_money(text)

    delivery_date = None
    delivery_days = None
    m = _DELIVERY_DATE.search(text)
    if m:
        delivery_date = m.group(1)
    else:
        m = _DELIVERY_DAYS.search(text)
        if m:
            delivery_days = _days(m.group(1), m.group(2))

    m = _DEADLINE.search(text)
    deadline = m.group(1) if m else None

    requirements = _requirements(text)
    if requirements:
        title = "Procurement of " + ", ".join(r["item"].title() for r in requirements)
    else:
        title = text.strip().split(".")[0][:80] or "Untitled RFP"

    return {
        "title": title[:200],
        "description": text.strip(),
        "budget": budget,
        "deadline": deadline,
        "delivery_date": delivery_date,
        "delivery_days": delivery_days,
        "payment_terms": _payment_terms(text),
        "warranty_period": _warranty(text),
        "requirements": requirements,
    }


def parse_proposal_text(subject: str, body: str) -> dict:
    """Regex fallback for the "proposal" extraction kind."""
    text = f"{subject or ''}\n{body or ''}"

    line_items = []
    for line in text.splitlines():
        m = _LINE_ITEM.match(line)
        if not m:
            continue
        qty = safe_int(m.group(1))
        unit_price = safe_float(m.group(3))
        line_total = safe_float(m.group(4)) if m.group(4) else None
        if line_total is None and qty is not None and unit_price is not None:
            line_total = round(qty * unit_price, 2)
        line_items.append({
            "item": m.group(2).strip(),
            "quantity": qty,
            "unit_price": unit_price,
            "total_price": line_total,
        })

    totals = _TOTAL.findall(text)
    if totals:
        total_price = safe_float(totals[-1])
    elif line_items and all(li["total_price"] is not None for li in line_items):
        total_price = round(sum(li["total_price"] for li in line_items), 2)
    else:
        amounts = [_amount(n, s) for n, s in _MONEY.findall(text)]
        amounts = [a for a in amounts if a is not None]
        total_price = max(amounts) if amounts else None

    delivery_date = None
    m = _DELIVERY_DATE.search(text)
    if m:
        delivery_date = m.group(1)
    else:
        m = _DELIVERY_DAYS.search(text)
        if m:
            delivery_date = (date.today() + timedelta(days=_days(m.group(1), m.group(2)))).isoformat()

    m = _NOTES.search(text)

    return {
        "total_price": total_price,
        "line_items": line_items,
        "payment_terms": _payment_terms(text),
        "warranty_period": _warranty(text),
        "delivery_date": delivery_date,
        "additional_notes": m.group(1).strip() if m else None,
    }


def _clamp(score: float) -> float:
    return round(max(0.0, min(100.0, score)), 1)


def score_proposals(proposals: list[dict], rfp: dict) -> dict:
    """Local comparison: cheapest wins, fixed terms/completeness scores."""
    if not proposals:
        raise ExtractionError("No proposals to compare")

    budget = safe_float((rfp or {}).get("budget"))
    priced = [p for p in proposals if safe_float(p.get("total_price")) is not None]
    ranked = sorted(priced, key=lambda p: safe_float(p["total_price"])) + [
        p for p in proposals if p not in priced
    ]
    cheapest = safe_float(ranked[0].get("total_price")) if priced else None

    scored = []
    for rank, p in enumerate(ranked, start=1):
        price = safe_float(p.get("total_price"))
        if price is None:
            price_score = 0.0
            reason = "No total price could be found in this proposal."
        elif budget:
            price_score = _clamp(100 - (price / budget * 100))
            reason = f"Quoted ${price:,.2f} against a ${budget:,.2f} budget (rank {rank} by price)."
        else:
            price_score = _clamp(100 * cheapest / price) if price > 0 else 100.0
            reason = f"Quoted ${price:,.2f} (rank {rank} by price); no budget was specified."
        overall = _clamp((price_score + HEURISTIC_TERMS_SCORE + HEURISTIC_COMPLETENESS_SCORE) / 3)
        scored.append({
            "id": p["id"],
            "overall_score": overall,
            "price_score": price_score,
            "terms_score": HEURISTIC_TERMS_SCORE,
            "completeness_score": HEURISTIC_COMPLETENESS_SCORE,
            "recommendation_reason": reason,
        })

    best = ranked[0]
    differences = []
    if len(priced) >= 2:
        low, high = ranked[0], ranked[len(priced) - 1]
        differences.append(
            f"Prices range from ${safe_float(low['total_price']):,.2f} ({low.get('vendor_name') or low['id']}) "
            f"to ${safe_float(high['total_price']):,.2f} ({high.get('vendor_name') or high['id']})."
        )
    for field, label in (("payment_terms", "Payment terms"), ("warranty_period", "Warranty")):
        values = {str(p.get(field)).strip().lower() for p in proposals if p.get(field)}
        if len(values) > 1:
            differences.append(f"{label} differ across vendors.")

    summary = (
        f"Compared {len(proposals)} proposals by price. "
        f"{best.get('vendor_name') or 'Proposal ' + str(best['id'])} offers the lowest price."
        if priced
        else f"Compared {len(proposals)} proposals; none stated a total price."
    )
    return {
        "proposals": scored,
        "best_proposal_id": best["id"],
        "summary": summary,
        "key_differences": differences,
    }


class HeuristicExtractor(Extractor):
    name = "heuristic"

    async def extract(self, kind: str, inputs: dict) -> dict:
        if kind == RFP:
            return parse_rfp_text(inputs.get("text") or "")
        if kind == PROPOSAL:
            return parse_proposal_text(inputs.get("subject") or "", inputs.get("body") or "")
        if kind == COMPARISON:
            return score_proposals(inputs.get("proposals") or [], inputs.get("rfp") or {})
        raise ExtractionError(f"Unknown extraction kind: {kind}")


class FallbackExtractor(Extractor):
    """Try ``primary``; on ExtractionError use ``fallback``."""

    def __init__(self, primary: Extractor, fallback: Extractor):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def extract(self, kind: str, inputs: dict) -> dict:
        try:
            return await self.primary.extract(kind, inputs)
        except ExtractionError as e:
            logger.warning("{} extraction failed ({}), using {} fallback", kind, e, self.fallback.name)
            return await self.fallback.extract(kind, inputs)


def build_extractor(s: Settings) -> Extractor:
    backend = (s.extraction_backend or "auto").lower()
    if backend == "heuristic" or not s.anthropic_api_key:
        return HeuristicExtractor()
    if backend == "claude":
        return ClaudeExtractor()
    return FallbackExtractor(ClaudeExtractor(), HeuristicExtractor())
