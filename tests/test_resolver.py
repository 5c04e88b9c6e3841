"""Unit tests for the symbolic reference resolver."""

from types import SimpleNamespace

import pytest
from starkware.cairo.lang.vm.memory_dict import MemoryDict
from starkware.cairo.lang.vm.memory_segments import MemorySegmentManager
from starkware.cairo.lang.vm.relocatable import RelocatableValue

from primitives.field import CAIRO_PRIME, USIZE_BOUND, felt
from runner.errors import ResolutionError, TypeMismatch
from runner.hint_vm import HintVm
from runner.output import CapturingChannel
from runner.references import ApTracking, HintReference
from runner.resolver import (
    apply_ap_tracking_correction,
    compute_addr_from_reference,
    get_constant_from_var_name,
    get_integer_from_var_name,
    get_length_from_var_name,
    get_maybe_relocatable_from_var_name,
    get_ptr_from_var_name,
    get_relocatable_from_var_name,
)

FP = RelocatableValue(1, 5)
AP = RelocatableValue(1, 10)


@pytest.fixture
def memory() -> MemoryDict:
    return MemoryDict()


@pytest.fixture
def hint_vm(memory: MemoryDict) -> HintVm:
    """Registers fp = 1:5 and ap = 1:10, with an array segment 2."""
    segments = MemorySegmentManager(memory=memory, prime=CAIRO_PRIME)
    for _ in range(3):
        segments.add()
    run_context = SimpleNamespace(memory=memory, pc=RelocatableValue(0, 0), ap=AP, fp=FP)
    return HintVm(run_context, segments, CapturingChannel())


def ref(value: str, group: int = 0, offset: int = 0) -> HintReference:
    return HintReference.from_value(value, ApTracking(group, offset))


# =============================================================================
# Ap Tracking Correction
# =============================================================================

class TestApTrackingCorrection:
    """ap-based references are corrected by the ap growth since they were created."""

    def test_same_offset(self) -> None:
        """No correction when ap did not move."""
        assert apply_ap_tracking_correction(AP, ApTracking(3, 2), ApTracking(3, 2)) == AP

    def test_ap_grew(self) -> None:
        """Reference at offset 1, hint at offset 2: ap was one lower."""
        assert apply_ap_tracking_correction(AP, ApTracking(3, 1), ApTracking(3, 2)) == RelocatableValue(1, 9)

    def test_group_mismatch(self) -> None:
        """ap cannot be tracked across groups."""
        with pytest.raises(ResolutionError, match="group mismatch"):
            apply_ap_tracking_correction(AP, ApTracking(2, 1), ApTracking(3, 2))

    def test_missing_tracking(self) -> None:
        """ap references need tracking data."""
        with pytest.raises(ResolutionError):
            apply_ap_tracking_correction(AP, None, ApTracking(3, 2))

    def test_correction_below_segment(self) -> None:
        """A correction past the start of the segment is an error, not a wrap."""
        with pytest.raises(ResolutionError):
            apply_ap_tracking_correction(RelocatableValue(1, 0), ApTracking(0, 0), ApTracking(0, 5))

    def test_resolved_address(self, hint_vm: HintVm) -> None:
        """`ap + (-1)` created at offset k, resolved at offset m, is ap - (m - k) - 1."""
        reference = ref("[cast(ap + (-1), felt*)]", 3, 1)
        addr = compute_addr_from_reference(reference, hint_vm, ApTracking(3, 4))
        assert addr == RelocatableValue(1, 10 - 3 - 1)


# =============================================================================
# Variable Accessors
# =============================================================================

class TestAccessors:
    """Typed reads of hint variables."""

    def test_integer_fp(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """fp-relative scalar."""
        memory[RelocatableValue(1, 0)] = 25
        ids = {"n": ref("[cast(fp + (-5), felt*)]")}
        assert int(get_integer_from_var_name("n", hint_vm, ids, ApTracking())) == 25

    def test_integer_ap(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """ap-relative scalar, corrected for one ap step."""
        memory[RelocatableValue(1, 8)] = 7
        ids = {"n": ref("[cast(ap + (-1), felt*)]", 3, 1)}
        assert int(get_integer_from_var_name("n", hint_vm, ids, ApTracking(3, 2))) == 7

    def test_integer_holding_address(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """A cell holding an address is not an integer."""
        memory[RelocatableValue(1, 0)] = RelocatableValue(2, 0)
        ids = {"n": ref("[cast(fp + (-5), felt*)]")}
        with pytest.raises(TypeMismatch):
            get_integer_from_var_name("n", hint_vm, ids, ApTracking())

    def test_integer_unwritten(self, hint_vm: HintVm) -> None:
        """Reading an unwritten cell fails."""
        ids = {"n": ref("[cast(fp + (-5), felt*)]")}
        with pytest.raises(ResolutionError, match="never written"):
            get_integer_from_var_name("n", hint_vm, ids, ApTracking())

    def test_integer_immediate(self, hint_vm: HintVm) -> None:
        """Immediates resolve to their value."""
        ids = {"n": ref("cast(17, felt)")}
        assert int(get_integer_from_var_name("n", hint_vm, ids, ApTracking())) == 17

    def test_integer_of_address_reference(self, hint_vm: HintVm) -> None:
        """A reference without dereference is an address, not a scalar."""
        ids = {"n": ref("cast(fp + (-5), felt*)")}
        with pytest.raises(TypeMismatch):
            get_integer_from_var_name("n", hint_vm, ids, ApTracking())

    def test_unknown_name(self, hint_vm: HintVm) -> None:
        """Names missing from ids are rejected."""
        with pytest.raises(ResolutionError, match="Unknown identifier"):
            get_integer_from_var_name("missing", hint_vm, {}, ApTracking())

    def test_ptr(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """A pointer variable yields the stored address."""
        memory[RelocatableValue(1, 5)] = RelocatableValue(2, 0)
        ids = {"xs": ref("[cast(fp, felt**)]")}
        assert get_ptr_from_var_name("xs", hint_vm, ids, ApTracking()) == RelocatableValue(2, 0)

    def test_ptr_holding_scalar(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """A cell holding a scalar is not a pointer."""
        memory[RelocatableValue(1, 5)] = 3
        ids = {"xs": ref("[cast(fp, felt**)]")}
        with pytest.raises(TypeMismatch):
            get_ptr_from_var_name("xs", hint_vm, ids, ApTracking())

    def test_ptr_without_dereference(self, hint_vm: HintVm) -> None:
        """`cast(fp + 1, felt*)` points at fp + 1."""
        ids = {"p": ref("cast(fp + 1, felt*)")}
        assert get_ptr_from_var_name("p", hint_vm, ids, ApTracking()) == RelocatableValue(1, 6)

    def test_inner_dereference(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """`[cast([fp + (-4)] + 2, felt*)]` reads the element 2 of the array at [fp - 4]."""
        memory[RelocatableValue(1, 1)] = RelocatableValue(2, 0)
        memory[RelocatableValue(2, 2)] = 99
        ids = {"v": ref("[cast([fp + (-4)] + 2, felt*)]")}
        assert int(get_integer_from_var_name("v", hint_vm, ids, ApTracking())) == 99

    def test_register_offset2(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """A negative scalar in offset2 moves the address back."""
        memory[RelocatableValue(1, 1)] = RelocatableValue(2, 4)
        memory[RelocatableValue(1, 2)] = CAIRO_PRIME - 3
        ids = {"p": ref("cast([fp + (-4)] + [fp + (-3)], felt*)")}
        assert get_relocatable_from_var_name("p", hint_vm, ids, ApTracking()) == RelocatableValue(2, 1)

    def test_maybe_relocatable(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """Dereferenced and plain references."""
        memory[RelocatableValue(1, 5)] = RelocatableValue(2, 0)
        ids = {"xs": ref("[cast(fp, felt**)]"), "a": ref("cast(fp, felt*)")}
        assert get_maybe_relocatable_from_var_name("xs", hint_vm, ids, ApTracking()) == RelocatableValue(2, 0)
        assert get_maybe_relocatable_from_var_name("a", hint_vm, ids, ApTracking()) == RelocatableValue(1, 5)

    def test_length(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """The largest length that fits in 64 bits."""
        memory[RelocatableValue(1, 0)] = USIZE_BOUND - 1
        ids = {"n": ref("[cast(fp + (-5), felt*)]")}
        assert get_length_from_var_name("n", hint_vm, ids, ApTracking()) == USIZE_BOUND - 1

    def test_length_too_large(self, memory: MemoryDict, hint_vm: HintVm) -> None:
        """A length of 2^64 or more does not fit a native integer."""
        memory[RelocatableValue(1, 0)] = CAIRO_PRIME - 1
        ids = {"n": ref("[cast(fp + (-5), felt*)]")}
        with pytest.raises(ResolutionError, match="native unsigned"):
            get_length_from_var_name("n", hint_vm, ids, ApTracking())


class TestConstants:
    """Program constants by name."""

    def test_full_and_short_names(self) -> None:
        """Constants resolve by full or short name."""
        constants = {"__main__.G_TERM": felt(196200)}
        assert int(get_constant_from_var_name("__main__.G_TERM", constants)) == 196200
        assert int(get_constant_from_var_name("G_TERM", constants)) == 196200

    def test_unknown(self) -> None:
        """Unknown constants are rejected."""
        with pytest.raises(ResolutionError):
            get_constant_from_var_name("MISSING", {})
