import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

from dotenv import load_dotenv

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

load_dotenv()

from db import connect_db, close_db, get_db
from models.matching import (
    DEFAULT_MATCH_LIMIT,
    MAX_MATCH_LIMIT,
    FindMatchesRequest,
    InsightsData,
    InsightsResponse,
    MatchListData,
    MatchResponse,
)
from models.user import User, UserCreate, UserUpdate
from services.directory import (
    DuplicateUserError,
    MongoUserDirectory,
    UserDirectory,
    resolve_user,
)
from services.insights import enrich_match, generate_user_insights
from services.matcher import MalformedUserError, find_matches

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_db()
    yield
    await close_db()


app = FastAPI(title="SkillSwap Matching API", lifespan=lifespan)


@app.exception_handler(MalformedUserError)
async def malformed_user_handler(request: Request, exc: MalformedUserError):
    logger.error("User directory holds a malformed record: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "User directory is corrupt"})


def get_directory() -> UserDirectory:
    return MongoUserDirectory(get_db())


# ── User endpoints ─────────────────────────────────────────────────────


@app.post("/users", response_model=User, status_code=201)
async def add_user(body: UserCreate, directory: UserDirectory = Depends(get_directory)):
    data = body.model_dump()
    data["id"] = data["id"] or uuid4().hex
    try:
        return await directory.add(User(**data))
    except DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/users/by-email/{email}", response_model=User)
async def read_user_by_email(email: str, directory: UserDirectory = Depends(get_directory)):
    user = await directory.get_by_email(email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@app.get("/users/{uid}", response_model=User)
async def read_user(uid: str, directory: UserDirectory = Depends(get_directory)):
    user = await directory.get(uid)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@app.put("/users/{uid}", response_model=User)
async def edit_user(uid: str, body: UserUpdate, directory: UserDirectory = Depends(get_directory)):
    user = await directory.get(uid)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    changes = body.model_dump(exclude_none=True)
    if not changes:
        return user

    updated = User.model_validate({**user.model_dump(), **changes})
    try:
        return await directory.put(updated)
    except DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.delete("/users/{uid}", status_code=204)
async def remove_user(uid: str, directory: UserDirectory = Depends(get_directory)):
    deleted = await directory.delete(uid)
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")


# ── Match endpoints ────────────────────────────────────────────────────


async def _ranked_matches(directory: UserDirectory, user: User, limit: int) -> MatchResponse:
    snapshot = await directory.get_all()
    ranked = find_matches(user, snapshot, limit)

    logger.info("Found %d matches for user %s (limit %d)", len(ranked), user.id, limit)
    return MatchResponse(
        data=MatchListData(
            matches=[enrich_match(m) for m in ranked],
            total_matches=len(ranked),
            timestamp=datetime.now(timezone.utc),
        )
    )


@app.post("/matches/find", response_model=MatchResponse)
async def find_user_matches(body: FindMatchesRequest, directory: UserDirectory = Depends(get_directory)):
    user = await resolve_user(directory, body.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return await _ranked_matches(directory, user, body.limit)


@app.get("/users/{uid}/matches", response_model=MatchResponse)
async def match_user(
    uid: str,
    limit: int = Query(DEFAULT_MATCH_LIMIT, ge=1, le=MAX_MATCH_LIMIT),
    directory: UserDirectory = Depends(get_directory),
):
    user = await directory.get(uid)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return await _ranked_matches(directory, user, limit)


@app.get("/matches/insights/{user_id}", response_model=InsightsResponse)
async def user_insights(user_id: str, directory: UserDirectory = Depends(get_directory)):
    user = await resolve_user(directory, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    return InsightsResponse(
        data=InsightsData(
            user_id=user_id,
            insights=generate_user_insights(user),
            generated_at=datetime.now(timezone.utc),
        )
    )
