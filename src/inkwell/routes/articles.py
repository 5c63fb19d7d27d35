# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Form, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from inkwell.auth.users import Role
from inkwell.core.utils import wants_html
from inkwell.core.views import render
from inkwell.deps import get_articles
from inkwell.errors import ValidationError
from inkwell.permissions import require_role
from inkwell.services.article_service import ArticleRepository, article_stats, find_article_by_title

router = APIRouter(prefix="/articles", dependencies=[Depends(require_role(Role.ADMIN))])


@router.get("")
def list_articles(request: Request, articles: ArticleRepository = Depends(get_articles)):
    rows = articles.list()
    if wants_html(request):
        return render(request, "articles.html", {"title": "Articles", "articles": rows})
    return JSONResponse(jsonable_encoder(rows))


@router.post("", status_code=201)
def create_article(payload: Dict[str, Any] = Body(...), articles: ArticleRepository = Depends(get_articles)):
    a = articles.create(payload)
    return JSONResponse(
        jsonable_encoder({"message": "Article created!", "articleId": a["_id"], "article": a}),
        status_code=201,
    )


@router.get("/new", response_class=HTMLResponse)
def new_article_form(request: Request):
    return render(request, "article_new.html", {"title": "New article", "error": "", "form": {}})


@router.post("/new")
def new_article_submit(
    request: Request,
    title: str = Form(""),
    text: str = Form(""),
    articles: ArticleRepository = Depends(get_articles),
):
    form = {"title": title, "text": text}
    try:
        if find_article_by_title(articles, title):
            raise ValidationError("An article with this title already exists.")
        a = articles.create(form)
    except ValidationError as e:
        return render(
            request,
            "article_new.html",
            {"title": "New article", "error": e.detail, "form": form},
            status_code=e.status_code,
        )
    return RedirectResponse(url=f"/articles/{a['_id']}", status_code=303)


# Stats routes are declared before /{article_id} so they are not captured by it.
@router.get("/stats")
def stats_json(articles: ArticleRepository = Depends(get_articles)):
    return {"message": "Article stats by year", "data": article_stats(articles.list())}


@router.get("/stats/view", response_class=HTMLResponse)
def stats_view(request: Request, articles: ArticleRepository = Depends(get_articles)):
    return render(request, "article_stats.html", {"title": "Article stats", "stats": article_stats(articles.list())})


@router.get("/{article_id}")
def get_article(request: Request, article_id: str, articles: ArticleRepository = Depends(get_articles)):
    a = articles.get(article_id)
    if wants_html(request):
        return render(request, "article.html", {"title": a["title"], "article": a})
    return JSONResponse(jsonable_encoder(a))


@router.put("/{article_id}")
def update_article(
    article_id: str,
    payload: Dict[str, Any] = Body(...),
    articles: ArticleRepository = Depends(get_articles),
):
    a = articles.update(article_id, payload)
    return JSONResponse(jsonable_encoder({"message": f"Article {article_id} is updated", "article": a}))


@router.delete("/{article_id}", status_code=204)
def delete_article(article_id: str, articles: ArticleRepository = Depends(get_articles)):
    articles.delete(article_id)
    return Response(status_code=204)
