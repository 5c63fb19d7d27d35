# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from inkwell.core.utils import clean, utcnow
from inkwell.errors import NotFound, ValidationError
from inkwell.infra.document_store import MemoryDocumentStore

ARTICLES_COLLECTION = "articles"
EDITABLE_FIELDS = ("title", "text")


class ArticleRepository:
    def __init__(self, store: MemoryDocumentStore, *, clock: Callable[[], datetime] = utcnow):
        self.articles = store.collection(ARTICLES_COLLECTION)
        self.clock = clock

    def list(self) -> List[Dict[str, Any]]:
        return self.articles.find(sort=[("createdAt", -1)])

    def get(self, article_id: str) -> Dict[str, Any]:
        a = self.articles.find_one({"_id": clean(article_id)})
        if not a:
            raise NotFound("Article not found")
        return a

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        title = clean(fields.get("title"))
        text = str(fields.get("text") or "").strip()
        if not title or not text:
            raise ValidationError("Both 'title' and 'text' are required.")
        now = self.clock()
        doc = {"title": title, "text": text, "createdAt": now, "updatedAt": now}
        doc["_id"] = self.articles.insert_one(doc)
        return doc

    def update(self, article_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update of title/text. Blank values are ignored."""
        updates = {k: str(fields[k]).strip() for k in EDITABLE_FIELDS if clean(fields.get(k))}
        if not updates:
            raise ValidationError("No update data")
        updates["updatedAt"] = self.clock()
        res = self.articles.update_one({"_id": clean(article_id)}, {"$set": updates})
        if not res.matched_count:
            raise NotFound("Article not found")
        return self.get(article_id)

    def delete(self, article_id: str) -> None:
        if not self.articles.delete_one({"_id": clean(article_id)}).deleted_count:
            raise NotFound("Article not found")


def article_stats(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Number of articles per creation year, oldest year first.

    Shared by the JSON endpoint and the HTML stats page.
    """
    if not docs:
        return []
    df = pd.DataFrame(docs)
    if "createdAt" not in df.columns:
        return []
    years = pd.to_datetime(df["createdAt"], utc=True, errors="coerce").dt.year.dropna().astype(int)
    counts = years.value_counts().sort_index()
    return [{"year": int(year), "totalArticles": int(n)} for year, n in counts.items()]


def find_article_by_title(repo: ArticleRepository, title: str) -> Optional[Dict[str, Any]]:
    return repo.articles.find_one({"title": clean(title)})
