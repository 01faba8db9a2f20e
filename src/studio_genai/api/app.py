from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from studio_genai.assembly.compose import compose_vertical
from studio_genai.config import StudioConfig, configure_logging, settings
from studio_genai.digest import LifelogClient, build_range, digest_source, normalize_logs, select_logs
from studio_genai.errors import InputError, StudioError
from studio_genai.planning.evaluation import evaluate_thumbnail
from studio_genai.planning.fallbacks import ThumbnailRequest
from studio_genai.planning.planner import PlanGenerator
from studio_genai.planning.templates import MANGA_TEMPLATES, catalog, thumbnail_template
from studio_genai.plans import Plan
from studio_genai.providers.nanobanana_proxy import DEFAULT_SIZE, NanoBananaProxy
from studio_genai.providers.registry import evaluator_for, image_renderer_for, text_planner_for
from studio_genai.rendering.orchestrator import RenderOrchestrator
from studio_genai.rendering.prompts import References
from studio_genai.results import Fallback, Outcome, describe
from studio_genai.runs import DONE, Pattern
from studio_genai.storage import HISTORY_CATEGORIES, HistoryEntry, HistoryStore, JsonFileKVStore
from studio_genai.variants import VariantManager

logger = logging.getLogger(__name__)

STREAMABLE = ("lp", "slides", "manga")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    yield


app = FastAPI(title="studio_genai", lifespan=lifespan)

_history: HistoryStore | None = None


def get_history() -> HistoryStore:
    # Built on first use so importing the app never touches data_dir.
    global _history
    if _history is None:
        _history = HistoryStore(JsonFileKVStore())
    return _history


def get_lifelog_client() -> LifelogClient:
    return LifelogClient()


@app.exception_handler(StudioError)
async def _studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


class RunRequest(BaseModel):
    mode: Literal["plan-only", "auto"] = "auto"
    credential: str | None = None
    renderer: Literal["gemini", "nanobanana"] = "gemini"
    patterns: int = Field(1, ge=1, le=4)
    # item id -> pattern label ("Pattern 2") or pattern id, applied after rendering
    selection: dict[str, str] = Field(default_factory=dict)
    adopt_pattern: str | None = None
    # A plan returned by an earlier plan-only call, possibly edited; skips planning.
    plan: dict[str, Any] | None = None
    color_reference: str | None = None
    face_reference: str | None = None
    layout_reference: str | None = None
    locale: str | None = None


class LpRequest(RunRequest):
    brief: str = ""


class SlidesRequest(RunRequest):
    outline: str = ""
    target_slides: int = Field(6, ge=1, le=20)


class MangaRequest(RunRequest):
    brief: str = ""
    art_style: str = ""
    template_ids: list[str] = Field(default_factory=list)


class ThumbnailBody(RunRequest):
    text: str = ""
    template_id: int = 1
    vibe: str = ""
    count: int = Field(4, ge=1, le=8)
    reference_image: str | None = None
    evaluate: bool = False


class DigestBody(RunRequest):
    period: Literal["daily", "weekly"] = "daily"
    date: str | None = None
    preview_only: bool = False
    selected_ids: list[str] = Field(default_factory=list)


class RerenderRequest(BaseModel):
    credential: str | None = None
    renderer: Literal["gemini", "nanobanana"] = "gemini"
    plan: dict[str, Any]
    pattern: dict[str, Any]
    item_id: str
    brief: str = ""
    art_style: str = ""
    color_reference: str | None = None
    face_reference: str | None = None
    layout_reference: str | None = None
    locale: str | None = None


class ComposeRequest(BaseModel):
    images: list[str] = Field(default_factory=list)


class NanoBananaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(None, alias="apiKey")
    prompt: str | None = None
    reference_image: str | None = Field(None, alias="referenceImage")
    size: str = DEFAULT_SIZE


def _config(domain: str, body: RunRequest | RerenderRequest) -> StudioConfig:
    options: dict[str, Any] = {"renderer": body.renderer}
    if body.locale:
        options["locale"] = body.locale
    return StudioConfig.from_settings(domain, credential=body.credential, options=options)


def _references(body: RunRequest | RerenderRequest, main: str | None = None) -> References:
    return References(
        main=main,
        color=body.color_reference,
        face=body.face_reference,
        layout=body.layout_reference,
    )


def _provided_plan(data: dict[str, Any], domain: str) -> Plan:
    try:
        plan = Plan.from_dict({**data, "domain": domain})
    except (KeyError, TypeError, ValueError) as exc:
        raise InputError(f"plan is malformed: {exc}") from exc
    if not plan.items:
        raise InputError("plan has no items")
    return plan


async def _resolve_plan(domain: str, body: RunRequest, make: Any) -> tuple[Plan, dict[str, Any]]:
    if body.plan:
        return _provided_plan(body.plan, domain), {"status": "provided", "reason": None, "detail": None}
    outcome: Outcome[Plan] = await make()
    if isinstance(outcome, Fallback):
        logger.info("%s plan fell back (%s)", domain, outcome.reason)
    return outcome.value, describe(outcome)


def _apply_selection(manager: VariantManager, body: RunRequest) -> None:
    def lookup(ref: str) -> Pattern | None:
        return next((p for p in manager.patterns if ref in (p.id, p.label)), None)

    if body.adopt_pattern:
        chosen = lookup(body.adopt_pattern)
        if chosen is not None:
            manager.adopt_pattern(chosen.id)
    for item_id, ref in body.selection.items():
        chosen = lookup(ref)
        if chosen is not None:
            manager.adopt_item(item_id, chosen.id)


async def _run(
    domain: str,
    body: RunRequest,
    make_plan: Any,
    brief: str,
    store: HistoryStore,
    references: References | None = None,
    extra_style: str = "",
) -> tuple[dict[str, Any], VariantManager | None]:
    config = _config(domain, body)
    plan, plan_status = await _resolve_plan(domain, body, make_plan)
    response: dict[str, Any] = {
        "domain": domain,
        "plan": plan.to_dict(),
        "plan_status": plan_status,
        "patterns": [],
        "selection": {},
        "selected_images": [],
    }
    if body.mode == "plan-only":
        return response, None

    orchestrator = RenderOrchestrator(image_renderer_for(config))
    manager = VariantManager(plan)
    await manager.generate(body.patterns, orchestrator, config, references or _references(body), brief, extra_style)
    _apply_selection(manager, body)
    response.update(manager.to_dict())
    response["demo"] = orchestrator.demo

    _record(store, domain, manager, {"brief": brief[:2000], "title": plan.title, "plan": plan.to_dict()})
    return response, manager


def _record(store: HistoryStore, domain: str, manager: VariantManager, payload: dict[str, Any]) -> None:
    if domain == "lp":
        # Only the first pattern of an LP run goes into history.
        first = manager.patterns[0] if manager.patterns else None
        outputs = [r.image_url for r in first.items if r.status == DONE] if first else []
    else:
        outputs = manager.selected_images()
    if outputs:
        store.append(domain, HistoryEntry(category=domain, payload=payload, outputs=outputs))


def _require(value: str, field: str) -> str:
    if not (value or "").strip():
        raise InputError(f"{field} is required", error=f"Missing {field}")
    return value.strip()


def _manga_templates(ids: list[str]):
    if not ids:
        return MANGA_TEMPLATES
    picked = tuple(t for t in MANGA_TEMPLATES if t.id in set(ids))
    return picked or MANGA_TEMPLATES


def _story_job(body: LpRequest | SlidesRequest | MangaRequest, config: StudioConfig):
    """(brief, extra style, plan factory) for the chained story domains."""
    planner = PlanGenerator(text_planner_for(config))
    if isinstance(body, SlidesRequest):
        outline = _require(body.outline, "outline")

        async def make_slides() -> Outcome[Plan]:
            return await planner.plan_slides(outline, config, body.target_slides)

        return outline, "", make_slides
    if isinstance(body, MangaRequest):
        brief = _require(body.brief, "brief")
        templates = _manga_templates(body.template_ids)

        async def make_manga() -> Outcome[Plan]:
            return await planner.plan_manga(brief, config, templates, body.art_style)

        return brief, body.art_style, make_manga

    brief = _require(body.brief, "brief")

    async def make_lp() -> Outcome[Plan]:
        return await planner.plan_lp(brief, config)

    return brief, "", make_lp


async def _run_story(domain: str, body: LpRequest | SlidesRequest | MangaRequest, store: HistoryStore) -> dict[str, Any]:
    config = _config(domain, body)
    brief, extra_style, make = _story_job(body, config)
    response, _ = await _run(domain, body, make, brief, store, extra_style=extra_style)
    return response


async def _stream_story(
    domain: str, body: LpRequest | SlidesRequest | MangaRequest, store: HistoryStore
) -> StreamingResponse:
    config = _config(domain, body)
    brief, extra_style, make = _story_job(body, config)
    plan, plan_status = await _resolve_plan(domain, body, make)
    orchestrator = RenderOrchestrator(image_renderer_for(config))
    manager = VariantManager(plan)
    references = _references(body)

    def line(data: dict[str, Any]) -> str:
        return json.dumps(data, ensure_ascii=False) + "\n"

    async def lines() -> AsyncIterator[str]:
        yield line({"kind": "plan", "plan": plan.to_dict(), "plan_status": plan_status})
        if body.mode == "plan-only":
            return
        for pattern in manager.new_patterns(body.patterns):
            async for event in orchestrator.events(plan, pattern, config, references, brief, extra_style):
                yield line(event.to_dict())
            manager.apply_defaults(pattern)
        _apply_selection(manager, body)
        _record(store, domain, manager, {"brief": brief[:2000], "title": plan.title, "plan": plan.to_dict()})
        yield line({"kind": "complete", "demo": orchestrator.demo, **manager.to_dict()})

    return StreamingResponse(lines(), media_type="application/x-ndjson")


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok", "demo": not bool(settings.gemini_api_key)}


@app.get("/api/templates")
def templates_catalog() -> dict[str, Any]:
    return catalog()


@app.post("/api/lp")
async def run_lp(body: LpRequest, store: HistoryStore = Depends(get_history)) -> dict[str, Any]:
    return await _run_story("lp", body, store)


@app.post("/api/slides")
async def run_slides(body: SlidesRequest, store: HistoryStore = Depends(get_history)) -> dict[str, Any]:
    return await _run_story("slides", body, store)


@app.post("/api/manga")
async def run_manga(body: MangaRequest, store: HistoryStore = Depends(get_history)) -> dict[str, Any]:
    return await _run_story("manga", body, store)


@app.post("/api/lp/stream")
async def stream_lp(body: LpRequest, store: HistoryStore = Depends(get_history)) -> StreamingResponse:
    return await _stream_story("lp", body, store)


@app.post("/api/slides/stream")
async def stream_slides(body: SlidesRequest, store: HistoryStore = Depends(get_history)) -> StreamingResponse:
    return await _stream_story("slides", body, store)


@app.post("/api/manga/stream")
async def stream_manga(body: MangaRequest, store: HistoryStore = Depends(get_history)) -> StreamingResponse:
    return await _stream_story("manga", body, store)


@app.post("/api/thumbnails")
async def run_thumbnails(body: ThumbnailBody, store: HistoryStore = Depends(get_history)) -> dict[str, Any]:
    text = _require(body.text, "text")
    template = thumbnail_template(body.template_id)
    if template is None:
        raise InputError(f"unknown thumbnail template {body.template_id}", error="Unknown template")
    config = _config("thumbnail", body)
    planner = PlanGenerator(text_planner_for(config))
    request = ThumbnailRequest(
        template=template,
        text=text,
        vibe=body.vibe,
        count=body.count,
        has_reference=bool(body.reference_image),
        has_color_reference=bool(body.color_reference),
        has_face_reference=bool(body.face_reference),
        has_layout_reference=bool(body.layout_reference),
    )

    async def make() -> Outcome[Plan]:
        return await planner.plan_thumbnails(request, config)

    response, manager = await _run(
        "thumbnail", body, make, text, store, references=_references(body, main=body.reference_image)
    )
    if body.evaluate and manager is not None:
        evaluator = evaluator_for(config)
        evaluations: dict[str, Any] = {}
        for result in manager.selected_results():
            if result.status != DONE or not result.image_url:
                continue
            outcome = await evaluate_thumbnail(evaluator, result.image_url)
            evaluations[result.id] = {"score": outcome.value.score, "advice": outcome.value.advice, **describe(outcome)}
        response["evaluations"] = evaluations
    return response


@app.post("/api/digest")
async def run_digest(
    body: DigestBody,
    store: HistoryStore = Depends(get_history),
    client: LifelogClient = Depends(get_lifelog_client),
) -> dict[str, Any]:
    time_range = build_range(body.period, body.date)
    logs = await client.fetch(time_range)
    if body.preview_only:
        return {
            "mode": body.period,
            "range": time_range.to_dict(),
            "log_count": len(logs),
            "logs": normalize_logs(logs),
        }

    source = digest_source(select_logs(logs, body.selected_ids), time_range, body.period)
    config = _config("digest", body)
    planner = PlanGenerator(text_planner_for(config))

    async def make() -> Outcome[Plan]:
        return await planner.plan_digest(source, config)

    response, _ = await _run("digest", body, make, source.label, store)
    response.update({"range": time_range.to_dict(), "log_count": len(logs)})
    return response


@app.post("/api/{domain}/rerender")
async def rerender(domain: str, body: RerenderRequest) -> dict[str, Any]:
    if domain not in STREAMABLE:
        raise HTTPException(status_code=404, detail=f"re-rendering is not available for '{domain}'")
    plan = _provided_plan(body.plan, domain)
    index = plan.index_of(body.item_id)
    if index < 0:
        raise InputError(f"item '{body.item_id}' is not part of the plan", error="Unknown item")
    try:
        pattern = Pattern.from_dict(body.pattern, plan)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise InputError(f"pattern is malformed: {exc}") from exc

    config = _config(domain, body)
    orchestrator = RenderOrchestrator(image_renderer_for(config))
    result = await orchestrator.rerender_item(plan, pattern, index, config, _references(body), body.brief, body.art_style)
    return {"item": result.to_dict(), "pattern": pattern.to_dict(), "demo": orchestrator.demo}


@app.post("/api/compose")
def compose(body: ComposeRequest) -> dict[str, Any]:
    composed = compose_vertical(body.images)
    return {"image": composed.data_url, "width": composed.width, "height": composed.height, "heights": composed.heights}


@app.get("/api/history/{category}")
def history_list(category: str, store: HistoryStore = Depends(get_history)) -> dict[str, Any]:
    if category not in HISTORY_CATEGORIES:
        raise HTTPException(status_code=404, detail=f"unknown history category '{category}'")
    return {"category": category, "items": store.list(category)}


@app.post("/api/nanobanana")
async def nanobanana(request: Request) -> JSONResponse:
    """Image proxy: 400 for a missing key or prompt, categorized 500 on network failure, upstream status otherwise."""
    try:
        raw = await request.json()
    except ValueError as exc:
        raise InputError("Request body must be valid JSON.", error="Invalid request body") from exc
    try:
        body = NanoBananaRequest.model_validate(raw if isinstance(raw, dict) else {})
    except ValidationError as exc:
        raise InputError(str(exc), error="Invalid request body") from exc
    if not (body.api_key or "").strip():
        raise InputError("apiKey is required", error="Missing NanoBanana apiKey")
    if not (body.prompt or "").strip():
        raise InputError("prompt is required", error="Missing or invalid prompt")

    proxy = NanoBananaProxy(api_key=body.api_key.strip())
    payload = await proxy.forward(body.prompt, body.reference_image, body.size or DEFAULT_SIZE)
    return JSONResponse(payload)
