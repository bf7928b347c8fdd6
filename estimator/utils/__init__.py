from estimator.utils.formatting import format_macro, parse_macro
from estimator.utils.normalize import normalize_result, repair_llm_json
from estimator.utils.sse import format_sse

__all__ = ["format_macro", "format_sse", "normalize_result", "parse_macro", "repair_llm_json"]
