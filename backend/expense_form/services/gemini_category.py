"""
Gemini category extraction for expense titles.
Suggests the category of an expense from its title when the title field loses focus.
"""
import os
import re
from typing import Dict, Optional, Sequence

from google import genai

from expense_form.expenses.models import Category

GENERAL_CATEGORY_ID = 0

MODELS_TO_TRY = [
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite-001',
    'gemini-flash-latest',
]


class GeminiCategoryService:
    """Service for guessing an expense category with Google Gemini."""

    def __init__(self, api_key: Optional[str] = None, client=None):
        self.client = client
        if self.client is not None:
            return

        api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            print("[CategoryExtract] GEMINI_API_KEY not set, category extraction disabled")
            return
        try:
            self.client = genai.Client(api_key=api_key)
            print("[CategoryExtract] Gemini client initialized")
        except Exception as e:
            print(f"[CategoryExtract] Failed to initialize Gemini client: {e}")

    def is_available(self) -> bool:
        return self.client is not None

    @staticmethod
    def build_prompt(title: str, categories: Sequence[Category]) -> str:
        listing = "\n".join(f"{c.id}: {c.grouping}/{c.name}" for c in categories)
        return (
            "You categorize shared expenses. Here is the list of categories, "
            "one per line as `id: grouping/name`:\n"
            f"{listing}\n\n"
            f"Expense title: \"{title}\"\n"
            "Answer with the id of the best matching category only, a bare integer. "
            f"If nothing fits, answer {GENERAL_CATEGORY_ID}."
        )

    @staticmethod
    def parse_category_id(text: Optional[str], categories: Sequence[Category]) -> int:
        """First integer in the answer if it is a known category, else General."""
        match = re.search(r"-?\d+", text or "")
        if not match:
            return GENERAL_CATEGORY_ID
        category_id = int(match.group())
        if any(c.id == category_id for c in categories):
            return category_id
        return GENERAL_CATEGORY_ID

    async def extract(self, title: str, categories: Sequence[Category]) -> Dict[str, int]:
        """
        Suggest a category for `title`.

        Returns:
            {"categoryId": int}, General (0) when there is nothing to go on

        Raises:
            RuntimeError: every model failed
        """
        if not self.is_available() or not title.strip():
            return {"categoryId": GENERAL_CATEGORY_ID}

        prompt = self.build_prompt(title.strip(), categories)
        last_error = None
        for model_name in MODELS_TO_TRY:
            try:
                response = await self.client.aio.models.generate_content(
                    model=model_name,
                    contents=prompt,
                )
                if response and response.text:
                    return {"categoryId": self.parse_category_id(response.text, categories)}
            except Exception as e:
                last_error = e
                print(f"[CategoryExtract] Model {model_name} failed: {str(e)[:100]}")
                continue

        if last_error:
            raise RuntimeError(f"Category extraction failed: {str(last_error)[:200]}") from last_error
        return {"categoryId": GENERAL_CATEGORY_ID}


# Singleton instance
_category_service = None

def get_category_service(api_key: Optional[str] = None) -> GeminiCategoryService:
    """Get or create the singleton category service instance."""
    global _category_service
    if _category_service is None:
        _category_service = GeminiCategoryService(api_key=api_key)
    return _category_service
