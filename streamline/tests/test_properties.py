"""
Property tests for the invariants that must hold for every input:

- BigInt values round-trip exactly through their canonical decimal form.
- Address conversion succeeds iff the byte array is 20 bytes long.
- Store ordinals are strictly increasing in call order, whatever the mix of
  set / set_if_not_exists / delete_prefix calls.
- Generation depends only on descriptor content, not declaration order.
"""

from __future__ import annotations

from typing import List, Tuple

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from streamline.abi import ContractInterface, parse_interface
from streamline.abi.types import ADDRESS, BigIntType
from streamline.errors import NO_VALUE
from streamline.generator import generate
from streamline.runtime.bridge import from_dynamic, to_dynamic
from streamline.runtime.builtins import uint
from streamline.runtime.store import MemoryStore, OrdinalClock, StoreSet, StoreSetOnce
from streamline.runtime.values import DynamicValue, bigint_to_string, parse_bigint, to_address_string

# the autouse config reset runs once per test, not per example
FIXTURE_SAFE = settings(suppress_health_check=[HealthCheck.function_scoped_fixture])

big_ints = st.integers(min_value=-(2**512), max_value=2**512)


@FIXTURE_SAFE
@given(big_ints)
def test_bigint_string_round_trip(n: int) -> None:
    assert parse_bigint(bigint_to_string(n)) == n
    assert from_dynamic(to_dynamic(n, BigIntType(signed=True)), BigIntType(signed=True)) == n
    assert uint(uint(DynamicValue.integer(n))) == DynamicValue.integer(n)


@FIXTURE_SAFE
@given(st.binary(min_size=0, max_size=64))
def test_address_conversion_iff_twenty_bytes(raw: bytes) -> None:
    as_text = to_address_string(raw)
    as_typed = from_dynamic(DynamicValue.byte_array(raw), ADDRESS)
    if len(raw) == 20:
        assert as_text == "0x" + raw.hex()
        assert as_typed == raw
    else:
        assert as_text is NO_VALUE
        assert as_typed is NO_VALUE


_keys = st.sampled_from(["a", "b", "c", "p:1", "p:2", "p:3"])
_ops = st.lists(
    st.one_of(
        st.tuples(st.just("set"), _keys, st.integers(0, 9)),
        st.tuples(st.just("once"), _keys, st.integers(0, 9)),
        st.tuples(st.just("drop"), st.sampled_from(["p:", "a", "zz"]), st.just(0)),
    ),
    max_size=30,
)


@FIXTURE_SAFE
@given(_ops)
def test_store_ordinals_strictly_increase(ops: List[Tuple[str, str, int]]) -> None:
    store, clock = MemoryStore(), OrdinalClock()
    setter, once = StoreSet(store, clock), StoreSetOnce(store, clock)
    for op, key, value in ops:
        if op == "set":
            setter.set(key, value)
        elif op == "once":
            once.set_if_not_exists(key, value)
        else:
            once.delete_prefix(key)
    ordinals = [d.ordinal for d in store.deltas()]
    assert ordinals == sorted(set(ordinals))
    assert all(o <= clock.last for o in ordinals)


_names = st.lists(
    st.from_regex(r"[A-Z][a-z]{1,6}", fullmatch=True), min_size=1, max_size=6, unique_by=str.lower
)


@settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(_names, st.randoms(use_true_random=False))
def test_generation_ignores_declaration_order(names: List[str], rnd) -> None:
    items = [{"type": "event", "name": n, "inputs": [{"name": "v", "type": "uint256"}]} for n in names]
    items += [
        {"type": "function", "name": n.lower() + "Of", "stateMutability": "view", "inputs": [],
         "outputs": [{"name": "", "type": "uint256"}]}
        for n in names
    ]
    shuffled = list(items)
    rnd.shuffle(shuffled)

    a: ContractInterface = parse_interface("c", items)
    b: ContractInterface = parse_interface("c", shuffled)
    ta, tb = generate(a), generate(b)
    assert list(ta) == list(tb)
    assert [s.signature for s in ta.values()] == [s.signature for s in tb.values()]
