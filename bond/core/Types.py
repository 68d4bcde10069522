from enum import Enum


class Side(Enum):
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class NodeChangeType(Enum):
    POSITION = "position"
    DIMENSIONS = "dimensions"
    SELECT = "select"
    REMOVE = "remove"


class EdgeChangeType(Enum):
    SELECT = "select"
    REMOVE = "remove"
