from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, Optional

from intrange.exceptions import AnalysisPanic
from intrange.ir.types import PTR, VOID, IntType, IRType
from intrange.utils import OrderedSet

if TYPE_CHECKING:
    from intrange.ir.function import IRFunction

# instructions which can terminate a basic block
BB_TERMINATORS = frozenset(["jmp", "jnz", "switch", "ret", "unreachable"])

BINARY_INSTRUCTIONS = frozenset(
    [
        "add",
        "sub",
        "mul",
        "udiv",
        "sdiv",
        "urem",
        "srem",
        "shl",
        "lshr",
        "ashr",
        "and",
        "or",
        "xor",
    ]
)

COMPARATOR_INSTRUCTIONS = frozenset(
    ["eq", "ne", "ult", "ule", "ugt", "uge", "slt", "sle", "sgt", "sge"]
)

CAST_INSTRUCTIONS = frozenset(["trunc", "zext", "sext", "bitcast", "ptrtoint", "inttoptr"])

MEMORY_INSTRUCTIONS = frozenset(["alloca", "field", "elem", "load", "store"])

ALL_INSTRUCTIONS = (
    BINARY_INSTRUCTIONS
    | COMPARATOR_INSTRUCTIONS
    | CAST_INSTRUCTIONS
    | MEMORY_INSTRUCTIONS
    | BB_TERMINATORS
    | {"select", "phi", "call"}
)

_SWAPPED_COMPARISON = {
    "eq": "eq",
    "ne": "ne",
    "ult": "ugt",
    "ule": "uge",
    "ugt": "ult",
    "uge": "ule",
    "slt": "sgt",
    "sle": "sge",
    "sgt": "slt",
    "sge": "sle",
}

_INVERTED_COMPARISON = {
    "eq": "ne",
    "ne": "eq",
    "ult": "uge",
    "ule": "ugt",
    "ugt": "ule",
    "uge": "ult",
    "slt": "sge",
    "sle": "sgt",
    "sgt": "sle",
    "sge": "slt",
}


def swap_comparison_opcode(opcode: str) -> str:
    """
    The predicate that holds for (b, a) whenever `opcode` holds for (a, b)
    """
    if opcode in _SWAPPED_COMPARISON:
        return _SWAPPED_COMPARISON[opcode]

    raise AnalysisPanic(f"unreachable {opcode}")  # pragma: nocover


def invert_comparison_opcode(opcode: str) -> str:
    """
    The predicate that holds for (a, b) exactly when `opcode` does not
    """
    if opcode in _INVERTED_COMPARISON:
        return _INVERTED_COMPARISON[opcode]

    raise AnalysisPanic(f"unreachable {opcode}")  # pragma: nocover


class IROperand:
    """
    IROperand represents an IR operand. An operand is anything that can be
    operated by instructions. It can be a literal, a variable, or a label.
    """

    value: Any
    type: Optional[IRType] = None
    _hash: Optional[int] = None

    def __init__(self, value: Any) -> None:
        self.value = value
        self._hash = None

    @property
    def name(self) -> str:
        return self.value

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(self.value)
        return self._hash

    def __eq__(self, other) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self.value == other.value

    def __repr__(self) -> str:
        return str(self.value)


class IRLiteral(IROperand):
    """
    IRLiteral represents an integer constant of a given type
    """

    value: int
    type: IntType

    def __init__(self, value: int, type: IntType) -> None:
        assert isinstance(value, int), value
        assert isinstance(type, IntType), type
        super().__init__(value)
        self.type = type

    def __hash__(self) -> int:
        return hash((self.value, self.type))

    def __eq__(self, other) -> bool:
        if not isinstance(other, IRLiteral):
            return False
        return self.value == other.value and self.type == other.type

    def __repr__(self) -> str:
        if abs(self.value) < 1024:
            return str(self.value)
        return f"0x{self.value:x}"


class IRVariable(IROperand):
    """
    IRVariable represents an SSA variable in IR. A variable is a string that
    starts with a %. Variables compare by name; the type is carried along
    for convenience.
    """

    def __init__(self, name: str, type: Optional[IRType] = None) -> None:
        assert isinstance(name, str)
        if not name.startswith("%"):
            name = f"%{name}"
        super().__init__(name)
        self.type = type

    @property
    def plain_name(self) -> str:
        return self.name.strip("%")


class IRLabel(IROperand):
    """
    IRLabel represents a label in IR: either a basic block label, or (when
    is_symbol is set) the name of a global or a function.
    """

    is_symbol: bool = False
    value: str

    def __init__(self, value: str, is_symbol: bool = False) -> None:
        assert isinstance(value, str), f"not a str: {value} ({type(value)})"
        assert len(value) > 0
        self.is_symbol = is_symbol
        super().__init__(value.removeprefix("@"))
        if is_symbol:
            # the address of a global or a function
            self.type = PTR

    def __repr__(self):
        return self.value


def _fmt(op: IROperand) -> str:
    if isinstance(op, IRLabel):
        return f"@{op}"
    return str(op)


class IRInstruction:
    """
    IRInstruction represents an instruction in IR. Each instruction has an
    opcode, operands (in source order), an optional output variable and the
    type written after the opcode. For example:
        %1 = add i32 %0, 1
    has opcode "add", operands [%0, 1], output %1 and type i32.

    For casts the type is the source type and the destination type is the
    type of the output variable.
    """

    opcode: str
    operands: list[IROperand]
    output: Optional[IRVariable]
    type: Optional[IRType]
    parent: IRBasicBlock
    # line in the source text, if parsed
    lineno: Optional[int]

    def __init__(
        self,
        opcode: str,
        operands: list[IROperand] | Iterator[IROperand],
        output: Optional[IRVariable] = None,
        type: Optional[IRType] = None,
    ):
        assert isinstance(opcode, str), "opcode must be an str"
        assert isinstance(operands, list | Iterator), "operands must be a list"
        self.opcode = opcode
        self.operands = list(operands)  # in case we get an iterator
        self.output = output
        self.type = type
        self.lineno = None

    @property
    def is_comparator(self) -> bool:
        return self.opcode in COMPARATOR_INSTRUCTIONS

    @property
    def is_bb_terminator(self) -> bool:
        return self.opcode in BB_TERMINATORS

    @property
    def result_type(self) -> Optional[IRType]:
        if self.output is None:
            return None
        return self.output.type

    def get_label_operands(self) -> Iterator[IRLabel]:
        """
        Get all block labels in instruction.
        """
        return (op for op in self.operands if isinstance(op, IRLabel) and not op.is_symbol)

    def get_input_variables(self) -> Iterator[IRVariable]:
        """
        Get all input operands for instruction.
        """
        return (op for op in self.operands if isinstance(op, IRVariable))

    def get_outputs(self) -> list[IROperand]:
        return [self.output] if self.output else []

    @property
    def phi_operands(self) -> Iterator[tuple[IRLabel, IROperand]]:
        """
        Get phi operands for instruction.
        """
        assert self.opcode == "phi", "instruction must be a phi"
        for i in range(0, len(self.operands), 2):
            label = self.operands[i]
            value = self.operands[i + 1]
            assert isinstance(label, IRLabel), f"not a label: {label} (at `{self}`)"
            yield label, value

    @property
    def switch_cases(self) -> Iterator[tuple[IRLiteral, IRLabel]]:
        """
        Get (case value, target) pairs of a switch; the default target
        is operands[1].
        """
        assert self.opcode == "switch", "instruction must be a switch"
        for i in range(2, len(self.operands), 2):
            value = self.operands[i]
            label = self.operands[i + 1]
            assert isinstance(value, IRLiteral), value
            assert isinstance(label, IRLabel), label
            yield value, label

    @property
    def callee(self) -> IROperand:
        assert self.opcode == "call", "instruction must be a call"
        return self.operands[0]

    @property
    def call_args(self) -> list[IROperand]:
        assert self.opcode == "call", "instruction must be a call"
        return self.operands[1:]

    def __repr__(self) -> str:
        s = ""
        if self.output:
            s += f"{self.output} = "
        s += self.opcode
        ops = self.operands
        opcode = self.opcode

        if opcode in ("jmp", "jnz", "unreachable"):
            args = ", ".join(_fmt(op) for op in ops)
            return f"{s} {args}".rstrip()
        if opcode == "ret":
            if len(ops) == 0:
                return f"{s} void"
            return f"{s} {self.type!r} {_fmt(ops[0])}"
        if opcode == "call":
            args = ", ".join(f"{op.type!r} {_fmt(op)}" for op in self.call_args)
            ret_type = self.type if self.type is not None else VOID
            return f"{s} {ret_type!r} {_fmt(self.callee)}({args})"
        if opcode in CAST_INSTRUCTIONS:
            assert self.output is not None
            return f"{s} {self.type!r} {_fmt(ops[0])} to {self.output.type!r}"
        if opcode == "alloca":
            return f"{s} {self.type!r}"
        if opcode in ("field", "elem"):
            rest = [_fmt(op) for op in ops]
            if opcode == "elem":
                rest[-1] = f"{ops[-1].type!r} {rest[-1]}"
            return f"{s} {self.type!r}, " + ", ".join(rest)

        return f"{s} {self.type!r} " + ", ".join(_fmt(op) for op in ops)


class IRBasicBlock:
    """
    IRBasicBlock represents a basic block in IR. Each basic block has a label and
    a list of instructions, while belonging to a function.

    The following IR code:
        loop:
            %1 = add i32 %0, 1
            %2 = ult i32 %1, 10
            jnz %2, @loop, @exit
    is a block labeled `loop` with three instructions; its successors are
    the blocks named by the labels of its terminator.

    The last instruction of a basic block is always a terminator
    instruction, which is used to branch to other basic blocks.
    """

    label: IRLabel
    parent: IRFunction
    instructions: list[IRInstruction]

    def __init__(self, label: IRLabel, parent: IRFunction) -> None:
        assert isinstance(label, IRLabel), "label must be an IRLabel"
        self.label = label
        self.parent = parent
        self.instructions = []

    @property
    def out_bbs(self) -> list[IRBasicBlock]:
        assert self.is_terminated
        term = self.last_instruction
        out_labels = OrderedSet(term.get_label_operands())
        fn = self.parent
        return [fn.get_basic_block(label.name) for label in out_labels]

    @property
    def last_instruction(self) -> IRInstruction:
        return self.instructions[-1]

    def get_assignments(self):
        """
        Get all assignments in basic block.
        """
        return [inst.output for inst in self.instructions if inst.output]

    @property
    def is_terminated(self) -> bool:
        """
        Check if the basic block is terminal, i.e. the last instruction is a terminator.
        """
        if len(self.instructions) == 0:
            return False
        return self.instructions[-1].is_bb_terminator

    def __repr__(self) -> str:
        s = f"{self.label!r}:\n"
        for inst in self.instructions:
            s += f"    {inst!r}\n"
        return s
