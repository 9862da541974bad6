from __future__ import annotations

import json
from typing import Any

from bendrija.core.config import settings
from bendrija.core.llm import chat_completion, llm_available, parse_json_object
from bendrija.modules.vendors.schemas import CategoryIn, VendorIn

_INVOICE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "analyze_invoice",
        "description": "Analyze an invoice and return structured data including amounts",
        "parameters": {
            "type": "object",
            "properties": {
                "vendor_name": {"type": "string", "description": "Full company name"},
                "vendor_company_code": {
                    "type": "string",
                    "description": "Lithuanian company code (9 digits)",
                },
                "vendor_vat_code": {"type": "string", "description": "VAT code starting with LT"},
                "vendor_category": {"type": "string", "description": "Vendor business category"},
                "invoice_number": {"type": "string"},
                "invoice_date": {"type": "string", "description": "YYYY-MM-DD"},
                "due_date": {"type": "string", "description": "YYYY-MM-DD"},
                "description": {"type": "string"},
                "suggested_category": {"type": "string"},
                "subtotal": {"type": "number", "description": "Amount without VAT"},
                "vat_amount": {"type": "number"},
                "total_amount": {"type": "number", "description": "Total amount to pay"},
                "confidence": {"type": "number"},
            },
            "required": ["vendor_name", "total_amount", "confidence"],
        },
    },
}

_SYSTEM_PROMPT = (
    "You analyze invoices issued to a Lithuanian residents association. "
    "Extract the financial details from the document and return JSON only.\n"
    "Available vendors: {vendors}\n"
    "Available cost categories: {categories}\n"
    "Always extract the TOTAL AMOUNT (Apmokėti / Iš viso / Suma) and the DUE DATE. "
    "If the due date is not stated, use 14 days after the invoice date. "
    'Look for "Apmokėti:", "Iš viso:", "Suma:", "PVM:", "Apmokėti iki:", "Mokėti iki:".'
)


def invoice_ai_available() -> bool:
    return llm_available()


def _vision_capable(file_type: str | None) -> bool:
    ft = (file_type or "").lower()
    return ft == "application/pdf" or ft.startswith("image/")


def analyze_invoice_with_ai(
    *,
    file_name: str,
    file_type: str | None,
    file_base64: str | None,
    vendors: list[VendorIn],
    categories: list[CategoryIn],
) -> dict[str, Any]:
    """
    Ask the document-analysis service about one vendor invoice.

    Returns the raw ``analyze_invoice`` arguments, or ``{}`` when the answer is unusable.
    Upstream error statuses propagate as :class:`bendrija.core.llm.UpstreamError`.
    """
    vendor_list = ", ".join(v.name for v in vendors)
    category_list = ", ".join(f"{c.code or ''} {c.name}".strip() for c in categories)

    user_content: list[dict[str, Any]] = []
    with_document = bool(file_base64) and _vision_capable(file_type)
    if with_document:
        user_content.append(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{file_type};base64,{file_base64}"},
            }
        )
    user_content.append(
        {
            "type": "text",
            "text": (
                f'Analyze this invoice. File name: "{file_name}".\n'
                "Extract vendor name, company code (įmonės kodas), VAT code (PVM mokėtojo "
                "kodas), invoice number, invoice and due dates (YYYY-MM-DD), a short "
                "description of what is billed, the best matching cost category, subtotal "
                "(suma be PVM), VAT amount, total amount and your confidence (0-1)."
            ),
        }
    )

    model = settings.openai_model
    if with_document and settings.openai_vision_model:
        model = settings.openai_vision_model

    payload = {
        "model": model,
        "temperature": 0,
        "messages": [
            {
                "role": "system",
                "content": _SYSTEM_PROMPT.format(vendors=vendor_list, categories=category_list),
            },
            {"role": "user", "content": user_content},
        ],
        "tools": [_INVOICE_TOOL],
        "tool_choice": {"type": "function", "function": {"name": "analyze_invoice"}},
    }
    content = chat_completion(payload, timeout=float(settings.invoice_ai_timeout_seconds or 30.0))
    if content is None:
        return {}
    try:
        obj = json.loads(content)
    except ValueError:
        obj = parse_json_object(content)
    return obj if isinstance(obj, dict) else {}
