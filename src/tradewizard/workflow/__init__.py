"""Multi-agent recommendation workflow built on LangGraph."""
from tradewizard.workflow.audit import (AuditTrail, GraphExecutionLogger,
                                        get_audit_trail,
                                        get_state_at_checkpoint,
                                        list_checkpoints)
from tradewizard.workflow.graph import (analyze_market, create_workflow,
                                        run_workflow)
from tradewizard.workflow.llm import create_llm_instances
from tradewizard.workflow.state import GraphState

__all__ = [
    "AuditTrail",
    "GraphExecutionLogger",
    "GraphState",
    "analyze_market",
    "create_llm_instances",
    "create_workflow",
    "get_audit_trail",
    "get_state_at_checkpoint",
    "list_checkpoints",
    "run_workflow",
]
