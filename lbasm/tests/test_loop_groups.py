"""
Tests for Loop Group Tracking

Covers:
- Contiguous index/limit/step layout
- Materialization of control values into the group
- Re-aliasing of the index and earlier loop-variable occurrences to base + 3
- Reporting names whose slots the group overwrites
- FORLOOP addressing the group base
"""

import logging

import pytest

from lbasm.errors import MalformedInput, MissingMetadata, ArityError
from lbasm.lir import LIRInst, Upvalue
from lbasm.pass_context import PassContext
from lbasm.tests.conftest import R, K, lower


class TestForPrep:
    """Tests for for_prep lowering."""

    def test_bound_operands_in_place(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("i_0"), [K(0)]),
            LIRInst("const", R("n"), [K(1)]),
            LIRInst("for_prep", None, [R("i_0"), R("n"), K(2)], {"target": "exit"}),
        )
        assert lines == [
            "LOADK R0 K0",
            "LOADK R1 K1",
            "LOADK R2 K2",
            "FORPREP R0 exit",
        ]
        assert ctx.loops.groups == {"i": 0}

    def test_group_is_contiguous(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("a"), [K(0)]),
            LIRInst("const", R("n"), [K(1)]),
            LIRInst("const", R("i_0"), [K(2)]),
            LIRInst("for_prep", None, [R("i_0"), R("n"), K(3)], {"target": "done"}),
        )
        assert lines[3:] == [
            "MOVE R3 R1",
            "LOADK R4 K3",
            "FORPREP R2 done",
        ]
        alloc = ctx.allocator
        assert ctx.loops.groups == {"i": 2}
        assert alloc.lookup("i_0") == 5
        assert alloc.lookup("n") == 3

    def test_no_fresh_allocation_inside_group(self, ctx):
        lower(
            ctx,
            LIRInst("const", R("i"), [K(0)]),
            LIRInst("for_prep", None, [R("i"), K(1), K(2)], {"target": "t"}),
        )
        assert ctx.resolve(R("x")) == "R4"

    def test_later_occurrences_resolve_to_body_slot(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("i_0"), [K(0)]),
            LIRInst("for_prep", None, [R("i_0"), K(1), K(2)], {"target": "exit"}),
            LIRInst("move", R("x"), [R("i_1")]),
        )
        assert lines[-1] == "MOVE R4 R3"
        assert ctx.resolve(R("i_5")) == "R3"

    def test_earlier_occurrences_realiased(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("acc"), [K(0)]),
            LIRInst("add", R("acc"), [R("acc"), R("i_1")]),
            LIRInst("for_prep", None, [R("i_0"), K(1), K(2)], {"target": "t"}),
        )
        assert lines == [
            "LOADK R0 K0",
            "ADD R0 R0 R1",
            "LOADK R3 K1",
            "LOADK R4 K2",
            "FORPREP R2 t",
        ]
        assert ctx.resolve(R("i_1")) == "R5"
        assert ctx.resolve(R("i_0")) == "R5"
        assert ctx.resolve(R("i_9")) == "R5"

    def test_index_reads_body_slot(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("i"), [K(0)]),
            LIRInst("for_prep", None, [R("i"), K(1), K(2)], {"target": "t"}),
            LIRInst("move", R("x"), [R("i")]),
            LIRInst("for_loop", None, [R("i")], {"body": "b"}),
        )
        assert lines[-3:] == ["FORPREP R0 t", "MOVE R4 R3", "FORLOOP R0 b"]
        assert ctx.allocator.lookup("i") == 3

    def test_unbound_index_reads_body_slot(self, ctx):
        lower(ctx, LIRInst("for_prep", None, [R("i_0"), R("n"), K(0)], {"target": "t"}))
        assert ctx.allocator.lookup("i_0") == 3
        assert ctx.allocator.lookup("n") == 1

    def test_register_step_forced(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("s"), [K(0)]),
            LIRInst("for_prep", None, [R("k"), K(1), R("s")], {"target": "t"}),
        )
        assert lines[1:] == [
            "LOADK R2 K1",
            "MOVE R3 R0",
            "FORPREP R1 t",
        ]
        assert ctx.allocator.lookup("s") == 3

    def test_unbound_limit_needs_no_copy(self, ctx):
        lines = lower(
            ctx,
            LIRInst("for_prep", None, [R("i"), R("n"), K(0)], {"target": "t"}),
        )
        assert lines == ["LOADK R2 K0", "FORPREP R0 t"]
        assert ctx.allocator.lookup("n") == 1

    def test_upvalue_limit_copied(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("i"), [K(0)]),
            LIRInst("for_prep", None, [R("i"), Upvalue(1), K(1)], {"target": "t"}),
        )
        assert lines[1:] == ["MOVE R1 U1", "LOADK R2 K1", "FORPREP R0 t"]

    def test_loop_alias_for_target(self, ctx):
        lines = lower(ctx, LIRInst("for_prep", None, [R("i"), K(0), K(1)], {"loop": "L2"}))
        assert lines[-1] == "FORPREP R0 L2"

    def test_missing_target(self, ctx):
        with pytest.raises(MissingMetadata):
            lower(ctx, LIRInst("for_prep", None, [R("i"), K(0), K(1)]))

    def test_missing_step(self, ctx):
        with pytest.raises(ArityError):
            lower(ctx, LIRInst("for_prep", None, [R("i"), K(0)], {"target": "t"}))

    def test_constant_index_rejected(self, ctx):
        with pytest.raises(MalformedInput):
            lower(ctx, LIRInst("for_prep", None, [K(0), K(1), K(2)], {"target": "t"}))


class TestForLoop:
    """Tests for for_loop lowering."""

    def test_steps_group_base(self, ctx):
        lines = lower(
            ctx,
            LIRInst("const", R("i_0"), [K(0)]),
            LIRInst("for_prep", None, [R("i_0"), K(1), K(2)], {"target": "exit"}),
            LIRInst("for_loop", None, [R("i_1")], {"body": "body"}),
        )
        assert lines[-1] == "FORLOOP R0 body"

    def test_steps_base_after_realias(self, ctx):
        lines = lower(
            ctx,
            LIRInst("move", R("x"), [R("i_1")]),
            LIRInst("for_prep", None, [R("i_0"), K(0), K(1)], {"target": "t"}),
            LIRInst("forloop", None, [R("i_1")], {"body": "b"}),
        )
        # i_1 now lives at base + 3, but FORLOOP addresses the base
        assert ctx.allocator.lookup("i_1") == 5
        assert lines[-1] == "FORLOOP R2 b"

    def test_without_group_resolves_normally(self, ctx):
        lines = lower(ctx, LIRInst("for_loop", None, [R("j")], {"body": "b"}))
        assert lines == ["FORLOOP R0 b"]

    def test_missing_body(self, ctx):
        with pytest.raises(MissingMetadata):
            lower(ctx, LIRInst("for_loop", None, [R("i")]))

    def test_missing_index(self, ctx):
        with pytest.raises(ArityError):
            lower(ctx, LIRInst("for_loop", None, [], {"body": "b"}))


class TestNestedLoops:
    """Two loop groups in one pass."""

    def test_groups_do_not_overlap(self):
        ctx = PassContext.create()
        lower(
            ctx,
            LIRInst("for_prep", None, [R("i"), K(0), K(1)], {"target": "o"}),
            LIRInst("for_prep", None, [R("j"), K(2), K(3)], {"target": "n"}),
        )
        assert ctx.loops.groups == {"i": 0, "j": 4}
        lines = lower(
            ctx,
            LIRInst("for_loop", None, [R("j_1")], {"body": "ib"}),
            LIRInst("for_loop", None, [R("i_1")], {"body": "ob"}),
        )
        assert lines == ["FORLOOP R4 ib", "FORLOOP R0 ob"]


class TestOverwrittenSlots:
    """Unrelated names already living inside a new group."""

    def test_reports_clobbered_name(self, ctx, caplog):
        lower(
            ctx,
            LIRInst("const", R("i"), [K(0)]),
            LIRInst("const", R("x"), [K(1)]),
        )
        caplog.set_level(logging.DEBUG, logger="lbasm.loop_groups")
        setup = ctx.loops.setup(R("i"), K(2), K(3))

        assert setup.base == 0
        assert setup.overwritten == ["x"]
        assert "loop 'i' takes R1 from 'x'" in caplog.text

    def test_controls_and_occurrences_not_reported(self, ctx):
        lower(
            ctx,
            LIRInst("const", R("i_0"), [K(0)]),
            LIRInst("const", R("n"), [K(1)]),
            LIRInst("const", R("i_1"), [K(2)]),
        )
        setup = ctx.loops.setup(R("i_0"), R("n"), K(3))

        assert setup.overwritten == []
        assert ctx.allocator.lookup("i_1") == 3
