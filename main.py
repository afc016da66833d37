import functions_framework
import json
from src.common.errors import InvalidDateError, LogFormatError, SourceReadError
from src.common.utils import parse_target_date
from src.most_active import most_active_cookie


def _error_response(error: Exception, status: int):
    body = {
        "status": "error",
        "kind": getattr(error, "kind", type(error).__name__),
        "message": str(error),
    }
    if getattr(error, "line_number", None) is not None:
        body["line_number"] = error.line_number
    return json.dumps(body), status


@functions_framework.http
def entrypoint(request):
    """
    Entrypoint HTTP (Cloud Function): ?file=gs://bucket/blob&date=YYYY-MM-DD.
    Only GCS objects are served; local paths on the function host are refused.
    """
    file_path = request.args.get("file")
    date_str = request.args.get("date")

    if not file_path or not date_str:
        missing = "file" if not file_path else "date"
        return json.dumps(
            {"status": "error", "message": f"Missing required parameter: {missing}"}
        ), 400

    if not file_path.startswith("gs://"):
        return json.dumps(
            {
                "status": "error",
                "kind": "invalid_source",
                "message": f"Only gs:// URIs are accepted: {file_path}",
            }
        ), 400

    try:
        target_date = parse_target_date(date_str)
        result = most_active_cookie(file_path, target_date)
        return json.dumps(
            {
                "file": file_path,
                "date": target_date.isoformat(),
                "result": result,
            }
        ), 200
    except (InvalidDateError, LogFormatError) as e:
        return _error_response(e, 400)
    except SourceReadError as e:
        return _error_response(e, 500)
    except Exception as e:
        print(f"[HTTP ERROR] {str(e)}")
        return json.dumps({"status": "error", "message": str(e)}), 500
