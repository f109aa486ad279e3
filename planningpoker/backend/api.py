"""FastAPI endpoints for participants, the host and health checks."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictInt, StrictStr

from .config import BackendSettings, load_settings
from .errors import PokerError, ValidationError
from .logging import configure_logging, get_logger
from .maintenance import build_jobs, stop_jobs
from .service import PlanningPokerService
from .store import PokerStore, create_store

logger = get_logger(__name__)


class JoinRequest(BaseModel):
    user_id: str | None = Field(default=None, max_length=128)


class JoinResponse(BaseModel):
    id: str
    nickname: str


class ParticipantRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)


class VoteRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    # JSON booleans and floats are rejected, never coerced.
    vote: StrictStr | StrictInt


class SuccessResponse(BaseModel):
    success: bool = True


class SessionStatusResponse(BaseModel):
    status: str


class TransitionResponse(BaseModel):
    success: bool = True
    status: str


class ParticipantEntry(BaseModel):
    nickname: str
    has_voted: bool


class ParticipantsResponse(BaseModel):
    users: list[ParticipantEntry]
    total_users: int


class VoteCountResponse(BaseModel):
    total: int
    voted: int


class FinalVoteEntry(BaseModel):
    nickname: str
    vote: str


class FinalVotesResponse(BaseModel):
    votes: list[FinalVoteEntry]


class HostLoginRequest(BaseModel):
    password: str = Field(min_length=1)


class HostLoginResponse(BaseModel):
    host_token: str


class HostUserEntry(BaseModel):
    id: str
    nickname: str
    current_vote: str | None


class HostStatusResponse(BaseModel):
    status: str
    votes: list[FinalVoteEntry]
    all_users: list[HostUserEntry]


class ClearUsersResponse(BaseModel):
    cleared_count: int


class DistributionEntry(BaseModel):
    vote: str
    count: int


class DistributionResponse(BaseModel):
    distribution: list[DistributionEntry]


async def poker_error_handler(request: Request, exc: PokerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("request.rejected", path=request.url.path, code=exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]
    return await poker_error_handler(request, ValidationError("Invalid input", details={"fields": fields}))


def create_app(
    store: PokerStore | None = None,
    settings: BackendSettings | None = None,
    service: PlanningPokerService | None = None,
    setup_logging: bool = False,
) -> FastAPI:
    if service is None:
        settings = settings if settings is not None else load_settings()
        local_store = store if store is not None else create_store(settings.database_url)
        service = PlanningPokerService(store=local_store, settings=settings)
    poker = service

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if setup_logging:
            configure_logging(json_output=poker.settings.log_json)
        poker.startup()
        tasks = [job.start() for job in build_jobs(poker)]
        try:
            yield
        finally:
            await stop_jobs(tasks)
            logger.info("service.stopped")

    app = FastAPI(title="Planning Poker API", version="0.1.0", lifespan=lifespan)
    app.state.service = poker
    app.add_exception_handler(PokerError, poker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.post("/api/join", response_model=JoinResponse)
    def join(payload: JoinRequest | None = None) -> JoinResponse:
        joined = poker.join(payload.user_id if payload is not None else None)
        return JoinResponse(id=joined.participant_id, nickname=joined.nickname)

    @app.post("/api/leave", response_model=SuccessResponse)
    def leave(payload: ParticipantRequest) -> SuccessResponse:
        poker.leave(payload.user_id)
        return SuccessResponse()

    @app.post("/api/vote", response_model=SuccessResponse)
    def vote(payload: VoteRequest) -> SuccessResponse:
        poker.vote(payload.user_id, payload.vote)
        return SuccessResponse()

    @app.get("/api/session", response_model=SessionStatusResponse)
    def get_session() -> SessionStatusResponse:
        return SessionStatusResponse(status=poker.session_status().value)

    @app.get("/api/users", response_model=ParticipantsResponse)
    def get_users() -> ParticipantsResponse:
        users = [ParticipantEntry(nickname=view.nickname, has_voted=view.has_voted) for view in poker.participants()]
        return ParticipantsResponse(users=users, total_users=len(users))

    @app.get("/api/vote-count", response_model=VoteCountResponse)
    def get_vote_count() -> VoteCountResponse:
        tally = poker.vote_count()
        return VoteCountResponse(total=tally.total, voted=tally.voted)

    @app.get("/api/votes", response_model=FinalVotesResponse)
    def get_votes() -> FinalVotesResponse:
        votes = [FinalVoteEntry(nickname=v.nickname, vote=v.vote) for v in poker.final_votes()]
        return FinalVotesResponse(votes=votes)

    @app.post("/api/host/login", response_model=HostLoginResponse)
    def host_login(payload: HostLoginRequest) -> HostLoginResponse:
        return HostLoginResponse(host_token=poker.host_login(payload.password))

    @app.post("/api/host/logout", response_model=SuccessResponse)
    def host_logout(x_host_token: str | None = Header(default=None)) -> SuccessResponse:
        poker.host_logout(x_host_token)
        return SuccessResponse()

    @app.post("/api/host/start", response_model=TransitionResponse)
    def host_start(x_host_token: str | None = Header(default=None)) -> TransitionResponse:
        return TransitionResponse(status=poker.host_start(x_host_token).status.value)

    @app.post("/api/host/end", response_model=TransitionResponse)
    def host_end(x_host_token: str | None = Header(default=None)) -> TransitionResponse:
        return TransitionResponse(status=poker.host_end(x_host_token).status.value)

    @app.post("/api/host/reset", response_model=TransitionResponse)
    def host_reset(x_host_token: str | None = Header(default=None)) -> TransitionResponse:
        return TransitionResponse(status=poker.host_reset(x_host_token).status.value)

    @app.post("/api/host/clear-users", response_model=ClearUsersResponse)
    def host_clear_users(x_host_token: str | None = Header(default=None)) -> ClearUsersResponse:
        return ClearUsersResponse(cleared_count=poker.host_clear_users(x_host_token))

    @app.get("/api/host/status", response_model=HostStatusResponse)
    def host_status(x_host_token: str | None = Header(default=None)) -> HostStatusResponse:
        view = poker.host_status(x_host_token)
        return HostStatusResponse(
            status=view.status.value,
            votes=[FinalVoteEntry(nickname=v.nickname, vote=v.vote) for v in view.votes],
            all_users=[
                HostUserEntry(id=user.participant_id, nickname=user.nickname, current_vote=user.current_vote)
                for user in view.all_users
            ],
        )

    @app.get("/api/host/distribution", response_model=DistributionResponse)
    def host_distribution(x_host_token: str | None = Header(default=None)) -> DistributionResponse:
        histogram = poker.host_distribution(x_host_token)
        return DistributionResponse(
            distribution=[DistributionEntry(vote=token, count=count) for token, count in histogram.items()]
        )

    @app.get("/health")
    def health() -> JSONResponse:
        report = poker.health()
        return JSONResponse(status_code=200 if report["status"] == "healthy" else 503, content=report)

    return app


# Entry point for `uvicorn planningpoker.backend.api:app`.
app = create_app(setup_logging=True)
