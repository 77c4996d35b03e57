import math
from typing import List, Optional

from phylocompare.exceptions import ParseError
from phylocompare.tree import Tree

CHARACTER_READER = "character_reader"
LENGTH_READER = "length_reader"


# ===================================================================
# 1. NODE ARENA
# ===================================================================


class _NodeColumns:
    """Parent/name/length columns filled while scanning the text."""

    def __init__(self) -> None:
        self.parents: List[Optional[int]] = [None]
        self.names: List[str] = [""]
        self.lengths: List[Optional[float]] = [None]
        self.closed: List[bool] = [False]

    def create_child(self, parent: int) -> int:
        self.parents.append(parent)
        self.names.append("")
        self.lengths.append(None)
        self.closed.append(False)
        return len(self.parents) - 1


# ===================================================================
# 2. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def flush_character_buffer(
    buffer: List[str], columns: _NodeColumns, node: int, position: int
) -> None:
    """
    Assign the buffered characters as the name of ``node``.

    Raises:
        ParseError: if the node already carries a name.
    """
    if not buffer:
        return
    if columns.names[node]:
        raise ParseError(f"Unexpected token '{''.join(buffer)}'", position)
    columns.names[node] = "".join(buffer)
    buffer.clear()


def flush_length_buffer(
    buffer: List[str], columns: _NodeColumns, node: int, position: int
) -> None:
    """
    Parse the buffered characters as the branch length of ``node``.

    Raises:
        ParseError: if the buffer is empty or not a finite number.
    """
    buffer_value = "".join(buffer)
    buffer.clear()
    if not buffer_value:
        raise ParseError("Missing branch length after ':'", position)
    try:
        parsed_number = float(buffer_value)
    except ValueError:
        raise ParseError(f"Invalid branch length '{buffer_value}'", position) from None
    if math.isinf(parsed_number) or math.isnan(parsed_number):
        raise ParseError(f"Invalid branch length '{buffer_value}'", position)
    columns.lengths[node] = parsed_number


def flush_buffer(
    buffer: List[str], columns: _NodeColumns, node: int, mode: str, position: int
) -> None:
    if mode == CHARACTER_READER:
        flush_character_buffer(buffer, columns, node, position)
    elif mode == LENGTH_READER:
        flush_length_buffer(buffer, columns, node, position)


# ===================================================================
# 3. SCANNING HELPERS
# ===================================================================


def _read_quoted_label(tokens: str, start: int) -> tuple[str, int]:
    """Return the label opened at ``start`` and the index after its closing quote."""
    chars: List[str] = []
    index = start + 1
    while index < len(tokens):
        char = tokens[index]
        if char == "'":
            # Doubled quote is an escaped quote inside the label
            if index + 1 < len(tokens) and tokens[index + 1] == "'":
                chars.append("'")
                index += 2
                continue
            return "".join(chars), index + 1
        chars.append(char)
        index += 1
    raise ParseError("Unterminated quoted label", start)


def _skip_comment(tokens: str, start: int) -> int:
    end = tokens.find("]", start + 1)
    if end == -1:
        raise ParseError("Unterminated comment", start)
    return end + 1


# ===================================================================
# 4. CORE PARSING FUNCTIONS
# ===================================================================


def _parse_newick(tokens: str) -> _NodeColumns:
    """
    Scan a single Newick tree character by character.

    The node on top of ``stack`` is the one whose label or length is being
    read: ``(`` opens its first child, ``,`` moves to a new sibling and
    ``)`` returns to the parent.
    """
    columns = _NodeColumns()
    stack: List[int] = [0]
    buffer: List[str] = []
    mode = CHARACTER_READER
    finished = False
    index = 0

    while index < len(tokens):
        char = tokens[index]

        if finished:
            if not char.isspace():
                raise ParseError("Unexpected text after end of tree", index)
            index += 1
            continue

        if char.isspace():
            index += 1
            continue

        if char == "[":
            index = _skip_comment(tokens, index)
            continue

        if char == "'":
            if mode != CHARACTER_READER or buffer:
                raise ParseError("Unexpected quoted label", index)
            label, index = _read_quoted_label(tokens, index)
            buffer.extend(label)
            flush_character_buffer(buffer, columns, stack[-1], index)
            continue

        if char == "(":
            node = stack[-1]
            if (
                buffer
                or mode != CHARACTER_READER
                or columns.names[node]
                or columns.closed[node]
            ):
                raise ParseError("Unexpected '('", index)
            stack.append(columns.create_child(node))

        elif char == ",":
            flush_buffer(buffer, columns, stack[-1], mode, index)
            if len(stack) < 2:
                raise ParseError("Unexpected ',' outside of brackets", index)
            stack.pop()
            stack.append(columns.create_child(stack[-1]))
            mode = CHARACTER_READER

        elif char == ")":
            flush_buffer(buffer, columns, stack[-1], mode, index)
            if len(stack) < 2:
                raise ParseError("Unbalanced ')'", index)
            stack.pop()
            columns.closed[stack[-1]] = True
            mode = CHARACTER_READER

        elif char == ":":
            if mode == LENGTH_READER:
                raise ParseError("Unexpected ':'", index)
            flush_buffer(buffer, columns, stack[-1], mode, index)
            if columns.lengths[stack[-1]] is not None:
                raise ParseError("Branch length given twice", index)
            mode = LENGTH_READER

        elif char == ";":
            flush_buffer(buffer, columns, stack[-1], mode, index)
            if len(stack) != 1:
                raise ParseError("Unbalanced brackets: missing ')'", index)
            finished = True

        elif char == "]":
            raise ParseError(f"Unexpected '{char}'", index)

        else:
            buffer.append(char)

        index += 1

    if not finished:
        flush_buffer(buffer, columns, stack[-1], mode, len(tokens))
        if len(stack) != 1:
            raise ParseError("Unbalanced brackets: missing ')'", len(tokens))

    return columns


# ===================================================================
# 5. PUBLIC API FUNCTIONS
# ===================================================================


def parse_newick(tokens: str) -> Tree:
    """
    Parse a Newick string holding exactly one tree.

    Args:
        tokens: Newick text, optionally terminated by ``;``

    Returns:
        The parsed `Tree`. Branch lengths that are not given are ``None``.

    Raises:
        ParseError: malformed bracket structure, unexpected token,
            unterminated label or comment, invalid branch length.
        DuplicateLeafLabel: a leaf label occurs twice.
        InvalidTree: a leaf has no label or a length is negative.
    """
    if not tokens or not tokens.strip():
        raise ParseError("Empty tree text")
    columns = _parse_newick(tokens)
    return Tree.from_parents(columns.parents, columns.names, columns.lengths)
