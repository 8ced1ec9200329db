"""Session-level orchestration: dispatch, rolling context, prompt budget."""

from .budget_manager import BudgetComponents, BudgetResult, ContextBudget, HistoryTurn
from .rolling_context import ConversationTurn, OperationEntry, RollingContext
from .session import AgentSession, build_session
from .tool_dispatcher import ToolCall, ToolDispatcher

__all__ = [
    "BudgetComponents",
    "BudgetResult",
    "ContextBudget",
    "HistoryTurn",
    "ConversationTurn",
    "OperationEntry",
    "RollingContext",
    "AgentSession",
    "build_session",
    "ToolCall",
    "ToolDispatcher",
]
