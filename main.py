import logging
import math
import os
import re
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Iterable, List, Literal, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

import storage
from database import db, create_document, ensure_indexes
from schemas import Comment, Like, Playlist, Subscription, Tweet, User, Video

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Password hashing (pure python scheme, no C extension needed)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if db is not None:
        ensure_indexes(db)
    else:
        logger.warning("DATABASE_URL/DATABASE_NAME not set, running without a database")
    yield


app = FastAPI(title="Video Sharing API", lifespan=lifespan)


def _cors_origins() -> List[str]:
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded videos and thumbnails are served from here
app.mount("/static", StaticFiles(directory=storage.UPLOAD_DIR), name="static")


# -------------------- Models --------------------
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class CommentRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class TweetRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=280)


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)


class PlaylistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)


# -------------------- Responses & Errors --------------------

def respond(message: str, data=None, status_code: int = 200) -> JSONResponse:
    """Uniform envelope: success flag, message, payload."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": status_code < 400, "message": message, "data": data}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return respond(str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "header", "form"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return respond(message, status_code=400)


@app.exception_handler(storage.UploadError)
async def upload_error_handler(request: Request, exc: storage.UploadError):
    logger.warning("Upload failed on %s %s: %s", request.method, request.url.path, exc)
    return respond("Failed to upload file", status_code=500)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return respond("Internal server error", status_code=500)


# -------------------- Helpers --------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_str_id(doc):
    if not doc:
        return doc
    d = {**doc}
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    # Convert datetime/ObjectId values to JSON friendly strings
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.isoformat()
        elif isinstance(v, ObjectId):
            d[k] = str(v)
    return d


def objid(id_str: str, what: str = "id") -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {what}")


def canonical_id(id_str: str, what: str = "id") -> str:
    """Lowercase hex form used for every stored reference."""
    return str(objid(id_str, what))


def find_or_404(collection: str, id_str: str, noun: str) -> dict:
    doc = db[collection].find_one({"_id": objid(id_str, f"{noun.lower()} id")})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{noun} not found")
    return doc


def actor_owns(resource: dict, actor_id: str) -> bool:
    return str(resource.get("user_id")) == str(actor_id)


def require_owner(resource: dict, actor_id: str, action: str, noun: str) -> None:
    if not actor_owns(resource, actor_id):
        raise HTTPException(status_code=403, detail=f"You are not authorized to {action} this {noun}")


def owner_update(collection: str, doc: dict, actor_id: str, changes: dict, noun: str) -> dict:
    """Apply $set changes; the write is filtered on the owner as well as the id."""
    changes["updated_at"] = now_utc()
    updated = db[collection].find_one_and_update(
        {"_id": doc["_id"], "user_id": actor_id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"{noun} not found")
    return updated


def toggle_record(collection: str, key: dict, document: BaseModel) -> bool:
    """Delete the join record matching key, or create it. Returns True when created."""
    if db[collection].find_one_and_delete(key):
        return False
    try:
        create_document(collection, document)
    except DuplicateKeyError:
        # created by a concurrent toggle; the record exists either way
        logger.info("Concurrent insert on %s for %s", collection, key)
    return True


def user_summary(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "avatar_url": user.get("avatar_url"),
    }


def public_users(user_ids: Iterable[str]) -> dict:
    ids = [ObjectId(u) for u in set(user_ids) if u and ObjectId.is_valid(u)]
    if not ids:
        return {}
    return {str(u["_id"]): user_summary(u) for u in db["user"].find({"_id": {"$in": ids}})}


def with_owners(items: List[dict]) -> List[dict]:
    owners = public_users(i.get("user_id") for i in items)
    for item in items:
        item["owner"] = owners.get(item.get("user_id"))
    return items


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict:
    return {"page": page, "limit": limit}


def paginate(collection: str, filter_dict: dict, page: int, limit: int, sort=None) -> dict:
    sort = list(sort or [("created_at", DESCENDING)])
    # Stable order for equal sort keys
    sort.append(("_id", sort[0][1]))
    total = db[collection].count_documents(filter_dict)
    cursor = db[collection].find(filter_dict).sort(sort).skip((page - 1) * limit).limit(limit)
    return {
        "items": [to_str_id(d) for d in cursor],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


def check_media(file: UploadFile, prefix: str, label: str) -> None:
    if not (file.content_type or "").startswith(prefix):
        raise HTTPException(status_code=400, detail=f"{label} must be a {prefix.rstrip('/')} file")


async def stage_upload(file: UploadFile) -> str:
    """Write an incoming upload to a local temp file and return its path."""
    ext = os.path.splitext(file.filename or "")[1]
    fd, path = tempfile.mkstemp(suffix=ext)
    with os.fdopen(fd, "wb") as f:
        f.write(await file.read())
    return path


def discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def load_videos(video_ids: List[str]) -> List[dict]:
    """Fetch videos by id keeping the given order; missing ids are skipped."""
    oids = [ObjectId(v) for v in video_ids if ObjectId.is_valid(v)]
    found = {str(v["_id"]): v for v in db["video"].find({"_id": {"$in": oids}})}
    return with_owners([to_str_id(found[v]) for v in video_ids if v in found])


# -------------------- Basic Routes --------------------
@app.get("/")
def read_root():
    return respond("Video Sharing Backend is running")


@app.get("/test")
def test_database():
    info = {
        "backend": "running",
        "database_connected": False,
        "collections": []
    }
    try:
        if db is not None:
            info["database_connected"] = True
            info["collections"] = db.list_collection_names()
    except Exception as e:
        info["error"] = str(e)
    return respond("Status", info)


# -------------------- Auth --------------------
@app.post("/auth/register", status_code=201)
def register(payload: RegisterRequest):
    # Uniqueness checks
    if db["user"].find_one({"email": payload.email}):
        raise HTTPException(status_code=400, detail="Email already in use")
    if db["user"].find_one({"username": payload.username}):
        raise HTTPException(status_code=400, detail="Username already in use")

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    try:
        inserted_id = create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email or username already in use")
    user_doc = db["user"].find_one({"_id": ObjectId(inserted_id)})
    user_doc.pop("password_hash", None)
    return respond("User registered successfully", to_str_id(user_doc), 201)


@app.post("/auth/login")
def login(payload: LoginRequest):
    user = db["user"].find_one({"email": payload.email})
    if not user:
        raise HTTPException(status_code=400, detail="Invalid credentials")
    if not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    # Frontend stores the user id and sends it back in X-User-Id
    user.pop("password_hash", None)
    return respond("Logged in successfully", to_str_id(user))


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    if not ObjectId.is_valid(x_user_id) or not db["user"].find_one({"_id": ObjectId(x_user_id)}):
        raise HTTPException(status_code=401, detail="Invalid user id")
    return str(ObjectId(x_user_id))


# -------------------- Videos --------------------
SORTABLE_VIDEO_FIELDS = {"created_at", "views_count", "title", "duration"}


@app.get("/videos")
def list_videos(
    query: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[Literal["asc", "desc"]] = Query(None, alias="sortType"),
    user_id: Optional[str] = Query(None, alias="userId"),
    paging: dict = Depends(page_params),
):
    filter_dict = {"is_published": True}
    if query:
        # Case-insensitive substring search
        regex = {"$regex": re.escape(query), "$options": "i"}
        filter_dict["$or"] = [{"title": regex}, {"description": regex}]
    if user_id:
        owner = find_or_404("user", user_id, "User")
        filter_dict["user_id"] = str(owner["_id"])

    field = sort_by or "created_at"
    if field not in SORTABLE_VIDEO_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {field}")
    # Newest first by default; an explicit sortBy is ascending unless sortType says desc
    if sort_type is None:
        sort_type = "asc" if sort_by else "desc"
    direction = DESCENDING if sort_type == "desc" else ASCENDING

    result = paginate("video", filter_dict, paging["page"], paging["limit"], sort=[(field, direction)])
    with_owners(result["items"])
    return respond("Videos fetched successfully", result)


@app.post("/videos", status_code=201)
async def publish_video(
    title: str = Form(..., min_length=3, max_length=100),
    description: str = Form(..., min_length=3, max_length=500),
    video_file: UploadFile = File(...),
    thumbnail: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
):
    check_media(video_file, "video/", "Video file")
    check_media(thumbnail, "image/", "Thumbnail")

    video_path = await stage_upload(video_file)
    thumb_path = await stage_upload(thumbnail)
    try:
        stored_video = await run_in_threadpool(storage.upload_file, video_path, "video")
        try:
            stored_thumb = await run_in_threadpool(storage.upload_file, thumb_path, "image")
        except storage.UploadError:
            storage.delete_file(stored_video["url"])
            raise
    finally:
        discard(video_path)
        discard(thumb_path)

    video = Video(
        user_id=user_id,
        title=title,
        description=description,
        video_url=stored_video["url"],
        thumbnail_url=stored_thumb["url"],
        duration=stored_video["duration"],
    )
    try:
        vid = await run_in_threadpool(create_document, "video", video)
    except (PyMongoError, RuntimeError):
        storage.delete_file(stored_video["url"])
        storage.delete_file(stored_thumb["url"])
        raise
    logger.info("User %s published video %s", user_id, vid)
    doc = await run_in_threadpool(db["video"].find_one, {"_id": ObjectId(vid)})
    payload = await run_in_threadpool(with_owners, [to_str_id(doc)])
    return respond("Video published successfully", payload[0], 201)


@app.get("/videos/{video_id}")
def get_video(video_id: str):
    _id = objid(video_id, "video id")
    v = db["video"].find_one_and_update(
        {"_id": _id},
        {"$inc": {"views_count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not v:
        raise HTTPException(status_code=404, detail="Video not found")
    return respond("Video fetched successfully", with_owners([to_str_id(v)])[0])


@app.patch("/videos/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None, min_length=3, max_length=100),
    description: Optional[str] = Form(None, min_length=3, max_length=500),
    thumbnail: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
):
    video = await run_in_threadpool(find_or_404, "video", video_id, "Video")
    require_owner(video, user_id, "update", "video")

    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if not changes and thumbnail is None:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if thumbnail is not None:
        check_media(thumbnail, "image/", "Thumbnail")
        thumb_path = await stage_upload(thumbnail)
        try:
            stored = await run_in_threadpool(storage.upload_file, thumb_path, "image")
        finally:
            discard(thumb_path)
        changes["thumbnail_url"] = stored["url"]

    try:
        updated = await run_in_threadpool(owner_update, "video", video, user_id, changes, "Video")
    except HTTPException:
        if "thumbnail_url" in changes:
            storage.delete_file(changes["thumbnail_url"])
        raise
    if "thumbnail_url" in changes:
        storage.delete_file(video.get("thumbnail_url"))
    payload = await run_in_threadpool(with_owners, [to_str_id(updated)])
    return respond("Video updated successfully", payload[0])


@app.delete("/videos/{video_id}")
def delete_video(video_id: str, user_id: str = Depends(get_current_user_id)):
    video = find_or_404("video", video_id, "Video")
    require_owner(video, user_id, "delete", "video")

    db["video"].delete_one({"_id": video["_id"]})
    video_id = str(video["_id"])

    # Remove everything that points at the video
    comment_ids = [str(c["_id"]) for c in db["comment"].find({"video_id": video_id}, {"_id": 1})]
    if comment_ids:
        db["like"].delete_many({"comment_id": {"$in": comment_ids}})
    db["comment"].delete_many({"video_id": video_id})
    db["like"].delete_many({"video_id": video_id})
    db["playlist"].update_many({"videos": video_id}, {"$pull": {"videos": video_id}})
    storage.delete_file(video.get("video_url"))
    storage.delete_file(video.get("thumbnail_url"))

    logger.info("User %s deleted video %s", user_id, video_id)
    return respond("Video deleted successfully")


@app.patch("/videos/{video_id}/publish")
def toggle_publish_status(video_id: str, user_id: str = Depends(get_current_user_id)):
    video = find_or_404("video", video_id, "Video")
    require_owner(video, user_id, "update", "video")

    published = not video.get("is_published", True)
    updated = owner_update("video", video, user_id, {"is_published": published}, "Video")
    state = "published" if published else "unpublished"
    logger.info("User %s %s video %s", user_id, state, video_id)
    return respond(f"Video {state} successfully", to_str_id(updated))


# -------------------- Comments --------------------
@app.get("/videos/{video_id}/comments")
def list_comments(video_id: str, paging: dict = Depends(page_params)):
    video = find_or_404("video", video_id, "Video")
    result = paginate("comment", {"video_id": str(video["_id"])}, paging["page"], paging["limit"])
    with_owners(result["items"])
    return respond("Comments fetched successfully", result)


@app.post("/videos/{video_id}/comments", status_code=201)
def add_comment(video_id: str, payload: CommentRequest, user_id: str = Depends(get_current_user_id)):
    video = find_or_404("video", video_id, "Video")
    comment = Comment(video_id=str(video["_id"]), user_id=user_id, text=payload.text)
    cid = create_document("comment", comment)
    comment = db["comment"].find_one({"_id": ObjectId(cid)})
    return respond("Comment added successfully", to_str_id(comment), 201)


@app.patch("/comments/{comment_id}")
def update_comment(comment_id: str, payload: CommentRequest, user_id: str = Depends(get_current_user_id)):
    comment = find_or_404("comment", comment_id, "Comment")
    require_owner(comment, user_id, "update", "comment")
    updated = owner_update("comment", comment, user_id, {"text": payload.text}, "Comment")
    return respond("Comment updated successfully", to_str_id(updated))


@app.delete("/comments/{comment_id}")
def delete_comment(comment_id: str, user_id: str = Depends(get_current_user_id)):
    comment = find_or_404("comment", comment_id, "Comment")
    require_owner(comment, user_id, "delete", "comment")
    db["comment"].delete_one({"_id": comment["_id"]})
    db["like"].delete_many({"comment_id": str(comment["_id"])})
    return respond("Comment deleted successfully")


# -------------------- Tweets --------------------
@app.post("/tweets", status_code=201)
def create_tweet(payload: TweetRequest, user_id: str = Depends(get_current_user_id)):
    tid = create_document("tweet", Tweet(user_id=user_id, content=payload.content))
    tweet = db["tweet"].find_one({"_id": ObjectId(tid)})
    return respond("Tweet created successfully", to_str_id(tweet), 201)


@app.get("/users/{user_id}/tweets")
def list_user_tweets(user_id: str, paging: dict = Depends(page_params)):
    user = find_or_404("user", user_id, "User")
    result = paginate("tweet", {"user_id": str(user["_id"])}, paging["page"], paging["limit"])
    return respond("User tweets fetched successfully", result)


@app.patch("/tweets/{tweet_id}")
def update_tweet(tweet_id: str, payload: TweetRequest, user_id: str = Depends(get_current_user_id)):
    tweet = find_or_404("tweet", tweet_id, "Tweet")
    require_owner(tweet, user_id, "update", "tweet")
    updated = owner_update("tweet", tweet, user_id, {"content": payload.content}, "Tweet")
    return respond("Tweet updated successfully", to_str_id(updated))


@app.delete("/tweets/{tweet_id}")
def delete_tweet(tweet_id: str, user_id: str = Depends(get_current_user_id)):
    tweet = find_or_404("tweet", tweet_id, "Tweet")
    require_owner(tweet, user_id, "delete", "tweet")
    db["tweet"].delete_one({"_id": tweet["_id"]})
    db["like"].delete_many({"tweet_id": str(tweet["_id"])})
    return respond("Tweet deleted successfully")


# -------------------- Likes --------------------
def _toggle_like(target_field: str, collection: str, noun: str, target_id: str, user_id: str):
    target_id = str(find_or_404(collection, target_id, noun)["_id"])

    key = {"user_id": user_id, "video_id": None, "comment_id": None, "tweet_id": None}
    key[target_field] = target_id
    liked = toggle_record("like", key, Like(**key))

    likes_count = db["like"].count_documents({target_field: target_id})
    state = "liked" if liked else "unliked"
    logger.info("User %s %s %s %s", user_id, state, collection, target_id)
    return respond(
        f"{noun} {state} successfully",
        {target_field: target_id, "liked": liked, "likes_count": likes_count},
    )


@app.post("/videos/{video_id}/like")
def toggle_video_like(video_id: str, user_id: str = Depends(get_current_user_id)):
    return _toggle_like("video_id", "video", "Video", video_id, user_id)


@app.post("/comments/{comment_id}/like")
def toggle_comment_like(comment_id: str, user_id: str = Depends(get_current_user_id)):
    return _toggle_like("comment_id", "comment", "Comment", comment_id, user_id)


@app.post("/tweets/{tweet_id}/like")
def toggle_tweet_like(tweet_id: str, user_id: str = Depends(get_current_user_id)):
    return _toggle_like("tweet_id", "tweet", "Tweet", tweet_id, user_id)


@app.get("/likes/videos")
def list_liked_videos(paging: dict = Depends(page_params), user_id: str = Depends(get_current_user_id)):
    result = paginate("like", {"user_id": user_id, "video_id": {"$ne": None}}, paging["page"], paging["limit"])
    result["items"] = load_videos([like["video_id"] for like in result["items"]])
    message = "Liked videos fetched successfully" if result["total"] else "No liked videos found"
    return respond(message, result)


# -------------------- Subscriptions & Channel --------------------
@app.post("/channels/{channel_id}/subscribe")
def toggle_subscription(channel_id: str, user_id: str = Depends(get_current_user_id)):
    channel_id = canonical_id(channel_id, "channel id")
    if channel_id == user_id:
        raise HTTPException(status_code=400, detail="Cannot subscribe to yourself")
    find_or_404("user", channel_id, "Channel")

    key = {"subscriber_id": user_id, "channel_id": channel_id}
    subscribed = toggle_record("subscription", key, Subscription(**key))

    sub_count = db["subscription"].count_documents({"channel_id": channel_id})
    logger.info("User %s %s channel %s", user_id, "subscribed to" if subscribed else "unsubscribed from", channel_id)
    return respond(
        "Subscribed successfully" if subscribed else "Unsubscribed successfully",
        {"channel_id": channel_id, "subscribed": subscribed, "subscriber_count": sub_count},
    )


def _subscription_people(filter_dict: dict, person_field: str, paging: dict) -> dict:
    result = paginate("subscription", filter_dict, paging["page"], paging["limit"])
    people = public_users(s[person_field] for s in result["items"])
    result["items"] = [
        {**people[s[person_field]], "subscribed_at": s.get("created_at")}
        for s in result["items"]
        if s[person_field] in people
    ]
    return result


@app.get("/channels/{channel_id}/subscribers")
def list_channel_subscribers(channel_id: str, paging: dict = Depends(page_params)):
    channel = find_or_404("user", channel_id, "Channel")
    result = _subscription_people({"channel_id": str(channel["_id"])}, "subscriber_id", paging)
    return respond("Subscribers fetched successfully", result)


@app.get("/users/{subscriber_id}/subscriptions")
def list_subscribed_channels(subscriber_id: str, paging: dict = Depends(page_params)):
    subscriber = find_or_404("user", subscriber_id, "Subscriber")
    result = _subscription_people({"subscriber_id": str(subscriber["_id"])}, "channel_id", paging)
    return respond("Subscribed channels fetched successfully", result)


# -------------------- Playlists --------------------
@app.post("/playlists", status_code=201)
def create_playlist(payload: PlaylistCreate, user_id: str = Depends(get_current_user_id)):
    pid = create_document(
        "playlist",
        Playlist(user_id=user_id, name=payload.name, description=payload.description),
    )
    playlist = db["playlist"].find_one({"_id": ObjectId(pid)})
    return respond("Playlist created successfully", to_str_id(playlist), 201)


@app.get("/users/{user_id}/playlists")
def list_user_playlists(user_id: str, paging: dict = Depends(page_params)):
    user = find_or_404("user", user_id, "User")
    result = paginate("playlist", {"user_id": str(user["_id"])}, paging["page"], paging["limit"])
    message = "User playlists fetched successfully" if result["total"] else "No playlists found for this user"
    return respond(message, result)


@app.get("/playlists/{playlist_id}")
def get_playlist(playlist_id: str):
    playlist = find_or_404("playlist", playlist_id, "Playlist")
    payload = with_owners([to_str_id(playlist)])[0]
    payload["videos"] = load_videos(playlist.get("videos", []))
    return respond("Playlist fetched successfully", payload)


@app.patch("/playlists/{playlist_id}")
def update_playlist(playlist_id: str, payload: PlaylistUpdate, user_id: str = Depends(get_current_user_id)):
    playlist = find_or_404("playlist", playlist_id, "Playlist")
    require_owner(playlist, user_id, "update", "playlist")

    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    updated = owner_update("playlist", playlist, user_id, changes, "Playlist")
    return respond("Playlist updated successfully", to_str_id(updated))


@app.delete("/playlists/{playlist_id}")
def delete_playlist(playlist_id: str, user_id: str = Depends(get_current_user_id)):
    playlist = find_or_404("playlist", playlist_id, "Playlist")
    require_owner(playlist, user_id, "delete", "playlist")
    db["playlist"].delete_one({"_id": playlist["_id"]})
    return respond("Playlist deleted successfully")


@app.post("/playlists/{playlist_id}/videos/{video_id}")
def add_video_to_playlist(playlist_id: str, video_id: str, user_id: str = Depends(get_current_user_id)):
    objid(playlist_id, "playlist id")
    video_id = canonical_id(video_id, "video id")
    playlist = find_or_404("playlist", playlist_id, "Playlist")
    require_owner(playlist, user_id, "modify", "playlist")
    find_or_404("video", video_id, "Video")

    if video_id in playlist.get("videos", []):
        raise HTTPException(status_code=400, detail="Video already in playlist")
    updated = db["playlist"].find_one_and_update(
        {"_id": playlist["_id"]},
        {"$addToSet": {"videos": video_id}, "$set": {"updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return respond("Video added to playlist successfully", to_str_id(updated))


@app.delete("/playlists/{playlist_id}/videos/{video_id}")
def remove_video_from_playlist(playlist_id: str, video_id: str, user_id: str = Depends(get_current_user_id)):
    objid(playlist_id, "playlist id")
    video_id = canonical_id(video_id, "video id")
    playlist = find_or_404("playlist", playlist_id, "Playlist")
    require_owner(playlist, user_id, "modify", "playlist")

    if video_id not in playlist.get("videos", []):
        raise HTTPException(status_code=400, detail="Video not in playlist")
    updated = db["playlist"].find_one_and_update(
        {"_id": playlist["_id"]},
        {"$pull": {"videos": video_id}, "$set": {"updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return respond("Video removed from playlist successfully", to_str_id(updated))


# -------------------- Dashboard --------------------
@app.get("/dashboard/stats")
def channel_stats(user_id: str = Depends(get_current_user_id)):
    total_videos = db["video"].count_documents({"user_id": user_id})
    total_subscribers = db["subscription"].count_documents({"channel_id": user_id})
    views = list(db["video"].aggregate([
        {"$match": {"user_id": user_id}},
        {"$group": {"_id": None, "total_views": {"$sum": "$views_count"}}},
    ]))
    total_views = views[0]["total_views"] if views else 0
    total_likes = db["like"].count_documents({"user_id": user_id})
    return respond("Channel stats fetched successfully", {
        "total_videos": total_videos,
        "total_subscribers": total_subscribers,
        "total_views": total_views,
        "total_likes": total_likes,
    })


@app.get("/dashboard/videos")
def channel_videos(paging: dict = Depends(page_params), user_id: str = Depends(get_current_user_id)):
    result = paginate("video", {"user_id": user_id}, paging["page"], paging["limit"])
    return respond("Channel videos fetched successfully", result)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
