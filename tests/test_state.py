import threading

from openpanel.state import ProfileState


def test_globals_start_absent():
    state = ProfileState()

    assert state.global_properties() is None
    assert state.profile_id is None


def test_merge_global_properties_accumulates():
    state = ProfileState()

    state.merge_global_properties({"a": 1})
    state.merge_global_properties({"b": 2})
    state.merge_global_properties({"a": 3})

    assert state.global_properties() == {"a": 3, "b": 2}


def test_merged_with_call_site_wins():
    state = ProfileState()
    state.merge_global_properties({"a": 1, "b": 1})

    assert state.merged_with({"a": 2}) == {"a": 2, "b": 1}
    assert state.merged_with(None) == {"a": 1, "b": 1}


def test_snapshots_do_not_alias_state():
    state = ProfileState()
    source = {"tags": ["x"]}
    state.merge_global_properties(source)

    source["tags"].append("y")
    snapshot = state.global_properties()
    snapshot["extra"] = True
    snapshot["tags"].append("z")

    assert state.global_properties() == {"tags": ["x"]}


def test_merged_with_does_not_alias_state():
    state = ProfileState()
    state.merge_global_properties({"meta": {"plan": "pro"}})

    merged = state.merged_with({"a": 1})
    merged["meta"]["plan"] = "free"

    assert state.global_properties() == {"meta": {"plan": "pro"}}


def test_reset_clears_identity_and_globals():
    state = ProfileState()
    state.set_profile_id("u1")
    state.merge_global_properties({"a": 1})

    state.reset()

    assert state.profile_id is None
    assert state.global_properties() is None


def test_concurrent_merges_do_not_lose_keys():
    state = ProfileState()

    def writer(n):
        for i in range(100):
            state.merge_global_properties({f"t{n}_{i}": i})

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(state.global_properties()) == 800
