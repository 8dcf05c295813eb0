from typing import Any, Dict, List, Optional, TypedDict


class ImageUpload(TypedDict):
    filename: str
    content_type: str
    data: bytes


class ThermalState(TypedDict, total=False):
    """
    State passed between the detect-thermal LangGraph nodes.

    Every node either fills in its outputs or sets `error` + `status_code`,
    after which the graph jumps straight to `format_response`.
    """

    authorization: Optional[str]  # raw Authorization header

    # Resolved caller
    user_id: Optional[str]

    # Multipart `image` field
    image: Optional[ImageUpload]

    # Storage key, always prefixed with user_id
    image_path: Optional[str]

    # data:{mime};base64,... sent to the AI gateway
    data_url: Optional[str]

    # Raw assistant text from the first choice
    ai_content: Optional[Any]

    # Parsed detections, or the fallback
    detections: Optional[List[Any]]

    # Row read back after insert
    record: Optional[Dict[str, Any]]

    # Signed URL; absent when signing failed
    image_url: Optional[str]

    # Final HTTP payload
    status_code: Optional[int]
    response: Optional[Dict[str, Any]]

    # Terminal error message
    error: Optional[str]
