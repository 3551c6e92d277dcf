"""Prompt templates for LLM statement extraction.

Prompts are versioned so a change in wording can be correlated with a change
in extraction quality in the processing log.
"""

from __future__ import annotations

from dataclasses import dataclass

# v1.0: single-page extraction, JSON-only answer
PROMPT_VERSION = "v1.0"


@dataclass
class StatementPrompt:
    """Prompt template for extracting transactions from one statement page.

    Attributes:
        version: Prompt version.
        template: Full prompt with a {page_text} placeholder. Literal braces
            in the JSON example are doubled for str.format.
    """

    version: str = PROMPT_VERSION

    template: str = """You are a financial data extraction assistant. Extract transaction information from the following bank statement text and return ONLY valid JSON (no markdown, no code blocks, no explanations).

Required JSON structure:
{{
  "account_name": "Name of the account holder or account",
  "account_last4": "Last 4 digits of the account number",
  "statement_date": "YYYY-MM-DD",
  "transactions": [
    {{
      "transaction_date": "YYYY-MM-DD",
      "post_date": "YYYY-MM-DD",
      "description": "Transaction description",
      "amount": -50.25,
      "transaction_type": "debit",
      "balance": 1234.56
    }}
  ]
}}

Rules:
1. transaction_type must be "debit" or "credit"
2. Use a negative amount for debits (money out) and a positive amount for credits (money in)
3. All dates must be in YYYY-MM-DD format
4. balance and post_date may be null if not shown
5. Extract ALL transactions on the page

Bank statement text:
{page_text}

Return ONLY the JSON object, nothing else."""

    def format(self, page_text: str) -> str:
        """Embed one page's text into the prompt.

        Args:
            page_text: Extracted text of a single page.

        Returns:
            Prompt ready to send to the model.
        """
        return self.template.format(page_text=page_text)
