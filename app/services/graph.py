"""
Scoring and tailoring pipelines.

Every AI operation runs the same LangGraph chain:

    validate -> rate_limit -> resolve_client -> build_prompt -> generate
             -> validate_response -> (persist)

A node that raises aborts the run with that error. Nothing is retried and no
partial result is returned.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypedDict

from langgraph.graph import StateGraph, END

from app.helpers.parsing import (
    normalize_job_record, validate_resume_score, validate_simplified_resume,
)
from app.helpers.prompts import (
    PromptPayload, build_job_format_prompt, build_score_prompt, build_tailor_prompt,
)
from app.models.ai_settings import AIConfig, PlanTier
from app.models.schemas import JobModel, ResumeScore, SimplifiedJob, SimplifiedResume
from app.services.ai_client import resolve_client
from app.services.job_manager import JobManager
from app.services.rate_limiter import AI_BUCKET, PUBLIC_BUCKET, check_rate_limit
from app.utils import config
from app.utils.exceptions import GenerationFailure, SchemaViolation
from app.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)

SCORE_TEMPERATURE = 0.2
CREATIVE_TEMPERATURE = 0.7


class PipelineState(TypedDict, total=False):
    inputs: Dict[str, Any]
    identity: str
    plan: PlanTier
    ai_config: AIConfig
    force_premium: bool
    model_override: Optional[str]
    deadline: Optional[float]
    user_id: Optional[str]
    persist: bool
    validated: Dict[str, Any]
    client: Any
    payload: PromptPayload
    raw_output: Dict[str, Any]
    result: Any
    record: Any


@dataclass(frozen=True)
class Operation:
    name: str
    validate: Callable[[Dict[str, Any]], Dict[str, Any]]
    build_prompt: Callable[[Dict[str, Any]], PromptPayload]
    validate_output: Callable[[Dict[str, Any], Dict[str, Any]], Any]
    temperature: float
    bucket: str = AI_BUCKET
    persist: Optional[Callable[[Any, PipelineState], Awaitable[Any]]] = None


# -------- input checks --------
def _require_object(value: Any, field: str) -> Dict[str, Any]:
    if not isinstance(value, dict) or not value:
        raise SchemaViolation(f"'{field}' is required and must be a non-empty object", field=field)
    return value


def _validate_score_inputs(inputs: Dict[str, Any]) -> Dict[str, Any]:
    resume = _require_object(inputs.get("resume"), "resume")

    if "raw_text" in resume:
        raw_text = resume["raw_text"]
        if not isinstance(raw_text, str) or not raw_text.strip():
            raise SchemaViolation("Resume text must be a non-empty string", field="resume.raw_text")
    else:
        # structured resume with no raw text
        validate_simplified_resume(resume, strict=False)

    job = inputs.get("job")
    if job is not None:
        job = _require_object(job, "job")
        description = job.get("description")
        if description is not None and not isinstance(description, str):
            raise SchemaViolation("Job description must be a string", field="job.description")

    return {"resume": resume, "job": job}


def _validate_format_inputs(inputs: Dict[str, Any]) -> Dict[str, Any]:
    text = inputs.get("text")
    if not isinstance(text, str) or not text.strip():
        raise SchemaViolation("Job listing text is required", field="text")
    return {"text": text}


def _validate_tailor_inputs(inputs: Dict[str, Any]) -> Dict[str, Any]:
    resume = validate_simplified_resume(_require_object(inputs.get("resume"), "resume"), strict=False)
    job = normalize_job_record(_require_object(inputs.get("job"), "job"))
    return {"resume": resume.model_dump(), "job": job.model_dump(mode="json")}


# -------- output checks --------
def _unwrap_content(raw: Dict[str, Any]) -> Dict[str, Any]:
    content = raw.get("content", raw)
    if not isinstance(content, dict):
        raise SchemaViolation("AI output is missing the 'content' object", field="content")
    return content


def _validate_score_output(raw: Dict[str, Any], validated: Dict[str, Any]) -> ResumeScore:
    return validate_resume_score(raw, expect_tailored=validated["job"] is not None)


def _validate_job_output(raw: Dict[str, Any], validated: Dict[str, Any]) -> SimplifiedJob:
    return normalize_job_record(_unwrap_content(raw))


def _validate_tailor_output(raw: Dict[str, Any], validated: Dict[str, Any]) -> SimplifiedResume:
    return validate_simplified_resume(_unwrap_content(raw), strict=True)


async def _persist_job(job: SimplifiedJob, state: PipelineState) -> JobModel:
    return await JobManager.create_job(state["user_id"], job)


SCORE_OPERATION = Operation(
    name="score_resume",
    validate=_validate_score_inputs,
    build_prompt=lambda v: build_score_prompt(v["resume"], v["job"]),
    validate_output=_validate_score_output,
    temperature=SCORE_TEMPERATURE,
    bucket=PUBLIC_BUCKET,
)

FORMAT_JOB_OPERATION = Operation(
    name="format_job_listing",
    validate=_validate_format_inputs,
    build_prompt=lambda v: build_job_format_prompt(v["text"]),
    validate_output=_validate_job_output,
    temperature=CREATIVE_TEMPERATURE,
    persist=_persist_job,
)

TAILOR_OPERATION = Operation(
    name="tailor_resume_to_job",
    validate=_validate_tailor_inputs,
    build_prompt=lambda v: build_tailor_prompt(v["resume"], v["job"]),
    validate_output=_validate_tailor_output,
    temperature=CREATIVE_TEMPERATURE,
)


# -------- graph --------
def build_graph(op: Operation):
    async def node_validate(state: PipelineState):
        return {"validated": op.validate(state.get("inputs") or {})}

    async def node_rate_limit(state: PipelineState):
        await check_rate_limit(state["identity"], state.get("plan", PlanTier.FREE), op.bucket)
        return {}

    async def node_resolve_client(state: PipelineState):
        client = resolve_client(
            state.get("ai_config") or AIConfig(),
            is_pro=state.get("plan") == PlanTier.PRO,
            force_premium=state.get("force_premium", False),
            model_override=state.get("model_override"),
        )
        return {"client": client}

    async def node_build_prompt(state: PipelineState):
        return {"payload": op.build_prompt(state["validated"])}

    async def node_generate(state: PipelineState):
        client = state["client"]
        payload = state["payload"]
        deadline = state.get("deadline")

        with PerformanceMonitor(f"{op.name} generation ({client.model_name})", logger=logger,
                                threshold_ms=config.AI_SLOW_CALL_MS):
            call = client.generate_object(payload.system, payload.prompt, temperature=op.temperature)
            if deadline is None:
                raw = await call
            else:
                try:
                    raw = await asyncio.wait_for(call, timeout=deadline)
                except asyncio.TimeoutError as e:
                    raise GenerationFailure(
                        f"Generation did not finish within {deadline}s",
                        model_name=client.model_name,
                        details={"deadline_seconds": deadline},
                    ) from e
        return {"raw_output": raw}

    async def node_validate_response(state: PipelineState):
        return {"result": op.validate_output(state["raw_output"], state["validated"])}

    g = StateGraph(PipelineState)
    g.add_node("validate", node_validate)
    g.add_node("rate_limit", node_rate_limit)
    g.add_node("resolve_client", node_resolve_client)
    g.add_node("build_prompt", node_build_prompt)
    g.add_node("generate", node_generate)
    g.add_node("validate_response", node_validate_response)
    g.set_entry_point("validate")
    g.add_edge("validate", "rate_limit")
    g.add_edge("rate_limit", "resolve_client")
    g.add_edge("resolve_client", "build_prompt")
    g.add_edge("build_prompt", "generate")
    g.add_edge("generate", "validate_response")

    if op.persist is None:
        g.add_edge("validate_response", END)
    else:
        async def node_persist(state: PipelineState):
            return {"record": await op.persist(state["result"], state)}

        g.add_node("persist", node_persist)
        g.add_conditional_edges(
            "validate_response",
            lambda state: "persist" if state.get("persist") else END,
            {"persist": "persist", END: END},
        )
        g.add_edge("persist", END)

    return g.compile()


_graphs: Dict[str, Any] = {}


def get_graph(op: Operation):
    if op.name not in _graphs:
        _graphs[op.name] = build_graph(op)
    return _graphs[op.name]


async def run_operation(op: Operation, state: PipelineState) -> PipelineState:
    logger.info(f"Running {op.name} for {state.get('identity')}")
    return await get_graph(op).ainvoke(state)


# -------- public operations --------
async def score_resume(resume: Any, job: Any, identity: str,
                       deadline: Optional[float] = None) -> ResumeScore:
    """
    Score a resume, against a job when one is given. Public callers run on the
    free tier with the server credential and the public quota.
    """
    final = await run_operation(SCORE_OPERATION, {
        "inputs": {"resume": resume, "job": job},
        "identity": identity,
        "plan": PlanTier.FREE,
        "ai_config": AIConfig(),
        "model_override": config.PUBLIC_SCORER_MODEL or None,
        "deadline": deadline,
    })
    return final["result"]


async def format_job_listing(text: str, ai_config: AIConfig, user_id: str, plan: PlanTier,
                             persist: bool = False, deadline: Optional[float] = None):
    """Structure free-text job listing; with persist the job row is created and returned"""
    final = await run_operation(FORMAT_JOB_OPERATION, {
        "inputs": {"text": text},
        "identity": f"user:{user_id}",
        "user_id": user_id,
        "plan": plan,
        "ai_config": ai_config,
        "persist": persist,
        "deadline": deadline,
    })
    return final["record"] if persist else final["result"]


async def tailor_resume_to_job(resume: Dict[str, Any], job: Dict[str, Any], ai_config: AIConfig,
                               user_id: str, plan: PlanTier,
                               deadline: Optional[float] = None) -> SimplifiedResume:
    final = await run_operation(TAILOR_OPERATION, {
        "inputs": {"resume": resume, "job": job},
        "identity": f"user:{user_id}",
        "user_id": user_id,
        "plan": plan,
        "ai_config": ai_config,
        "deadline": deadline,
    })
    return final["result"]
