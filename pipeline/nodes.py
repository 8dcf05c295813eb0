from __future__ import annotations

import logging
import time
from typing import Any, Dict

from langchain_core.runnables import RunnableConfig
from starlette.datastructures import UploadFile

from clients.base import CompletionHTTPError, ServiceError, Services
from pipeline.errors import (
    MISSING_AUTH_HEADER,
    BadRequest,
    DatabaseError,
    HandlerError,
    Unauthorized,
    UploadError,
    ai_error_for_status,
)
from pipeline.state import ThermalState
from pipeline.tools import (
    DETECTION_TEMPERATURE,
    build_detection_messages,
    encode_data_url,
    extract_detections,
    first_choice_content,
)

log = logging.getLogger(__name__)


def _services(config: RunnableConfig) -> Services:
    return config["configurable"]["services"]


def _fail(err: HandlerError) -> Dict[str, Any]:
    return {"error": err.message, "status_code": err.status_code}


def _now_millis() -> int:
    return int(time.time() * 1000)


def node_authenticate(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    """Resolves the bearer token in the Authorization header to a user id."""
    header = state.get("authorization")
    if not header:
        return _fail(Unauthorized(MISSING_AUTH_HEADER))

    token = header.replace("Bearer ", "", 1)
    try:
        user = _services(config).authenticator.get_user(token)
    except ServiceError as e:
        log.error("[AUTH] %s", e)
        return _fail(Unauthorized())

    if user is None:
        log.error("[AUTH] token resolved to no user")
        return _fail(Unauthorized())

    return {"user_id": user.id}


async def node_validate(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    """
    Reads the multipart body and pulls out the `image` file field.

    The form is only read once the caller is authenticated.
    """
    read_form = config["configurable"]["read_form"]
    form = await read_form()
    file = form.get("image")

    if not isinstance(file, UploadFile):
        return _fail(BadRequest())

    data = await file.read()
    filename = file.filename or "image"
    log.info("[VALIDATE] Processing image: %s for user: %s", filename, state.get("user_id"))

    return {
        "image": {
            "filename": filename,
            "content_type": file.content_type or "application/octet-stream",
            "data": data,
        }
    }


def node_upload(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    """Stores the image under `{user_id}/{unix_millis}_{filename}`, never overwriting."""
    image = state["image"]
    key = f"{state['user_id']}/{_now_millis()}_{image['filename']}"

    try:
        path = _services(config).blob_store.upload(
            key,
            image["data"],
            image["content_type"],
            upsert=False,
        )
    except ServiceError as e:
        log.error("[UPLOAD] %s", e)
        return _fail(UploadError())

    log.info("[UPLOAD] Image uploaded successfully: %s", path)
    return {"image_path": path}


def node_encode(state: ThermalState) -> Dict[str, Any]:
    image = state["image"]
    return {"data_url": encode_data_url(image["data"], image["content_type"])}


def node_detect(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    """Single chat-completion call; non-success statuses are terminal."""
    services = _services(config)
    messages = build_detection_messages(state["data_url"])

    log.info("[AI] Sending image to %s for detection", services.model)
    try:
        completion = services.vision.complete(
            messages,
            model=services.model,
            temperature=DETECTION_TEMPERATURE,
        )
    except CompletionHTTPError as e:
        log.error("[AI] API error: %s %s", e.status_code, e.body)
        return _fail(ai_error_for_status(e.status_code))

    log.info("[AI] response received")
    return {"ai_content": first_choice_content(completion)}


def node_parse(state: ThermalState) -> Dict[str, Any]:
    detections = extract_detections.invoke({"content": state.get("ai_content") or "[]"})
    log.info("[PARSE] %d detections: %s", len(detections), detections)
    return {"detections": detections}


def node_persist(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    try:
        record = _services(config).record_store.insert_detection(
            state["user_id"],
            state["image_path"],
            state["detections"],
        )
    except ServiceError as e:
        log.error("[DB] %s", e)
        return _fail(DatabaseError())

    log.info("[DB] Detection saved to database: %s", record.get("id"))
    return {"record": record}


def node_sign(state: ThermalState, config: RunnableConfig) -> Dict[str, Any]:
    """Signed read URL for the stored image. Failure leaves `image_url` unset."""
    services = _services(config)
    try:
        url = services.blob_store.create_signed_url(state["image_path"], services.signed_url_ttl)
    except ServiceError as e:
        log.warning("[SIGN] %s", e)
        return {"image_url": None}

    return {"image_url": url}


def format_response(state: ThermalState) -> Dict[str, Any]:
    """Packs either the terminal error or the saved record into the HTTP payload."""
    error = state.get("error")
    if error:
        return {
            "status_code": state.get("status_code") or 500,
            "response": {"error": error},
        }

    record = state.get("record") or {}
    body: Dict[str, Any] = {"id": record.get("id")}
    if state.get("image_url"):
        body["image_url"] = state["image_url"]
    body["detections"] = state.get("detections") or []
    body["created_at"] = record.get("created_at")

    return {"status_code": 200, "response": body}
