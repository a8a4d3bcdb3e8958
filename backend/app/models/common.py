"""Common types and enums shared across all models."""

from enum import Enum


class Step(str, Enum):
    """Conversation step."""

    upload = "upload"
    data_selection = "data-selection"
    design = "design"
    generation = "generation"
    preview = "preview"


class DataScope(str, Enum):
    """How much of the analysed data a dashboard should cover."""

    all = "all"
    insights = "insights"


class MessageRole(str, Enum):
    """Author of a timeline message."""

    user = "user"
    agent = "agent"
    success = "success"


# Step ordinal shown to the user ("Step N of 4"); generation folds into preview.
STEP_NUMBERS: dict[Step, int] = {
    Step.upload: 1,
    Step.data_selection: 2,
    Step.design: 3,
    Step.generation: 4,
    Step.preview: 4,
}
