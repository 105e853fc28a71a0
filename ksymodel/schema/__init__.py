"""KaiTai schema model."""

from .errors import *
from .parser import load as load
from .parser import parse as parse
from .parser import parse_file as parse_file
from .references import ReferenceIndex as ReferenceIndex
from .references import collect_references as collect_references
from .render import render_reference as render_reference
from .types import *
from .values import PrimitiveValue as PrimitiveValue
from .values import ValueKind as ValueKind
from .writer import dump as dump
from .writer import to_node as to_node
