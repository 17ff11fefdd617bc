import pathlib

from typing import (Any, List, Union, Callable, Dict)

# used in parser and write out functions
Path = Union[str, pathlib.Path]

# JSON-safe dictionary produced by the to_dict methods of result records
ResultDict = Dict[str, Any]

# contest dictionary built from one contest_set.csv row
ContestDict = Dict[str, Any]

# returned from parser module, get_parser_dict
ParserDict = Dict[str, Callable[[ContestDict], Dict[str, List]]]
