from .response import ResponseDraft, ResponsePatch, ResponseRow
from .view import FormFields, FormUpdate, RosterEntry, RosterGroup, ViewState

__all__ = [
    "ResponseDraft",
    "ResponsePatch",
    "ResponseRow",
    "FormFields",
    "FormUpdate",
    "RosterEntry",
    "RosterGroup",
    "ViewState",
]
