from typing import Any, Dict, Optional


def api_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Standard success envelope: {success, data, message?}"""
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body
