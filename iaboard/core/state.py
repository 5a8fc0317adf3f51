from typing import Any, Dict, Optional, TypedDict


class WorkflowState(TypedDict):
    run_id: str
    product_type: str
    context: Dict[str, Any]
    research: Optional[Dict[str, Any]]  # web search payload for the market step
    current_step: int  # next step to run, 1-based
    total_steps: int
    results: Dict[str, Any]  # step_<id> -> step data
    sources: Dict[str, str]  # step_<id> -> ai | fallback
    status: str  # processing, completed, error, stopped
    download_file: Optional[str]
