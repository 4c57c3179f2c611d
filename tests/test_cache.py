import json

from transfers import DERIVATION_VERSION, DerivedCache, compute_build_source_hash, get_derived_transfers_sync

from factories import tortilla_build, tortilla_steps, make_build


def test_cache_miss_writes_then_hits(tmp_path):
    cache = DerivedCache(tmp_path)
    b = tortilla_build()

    first = cache.get_transfers(b)
    path = cache.path_for(b.id)
    assert path.exists()
    written = path.read_bytes()

    data = json.loads(written)
    assert data["buildId"] == b.id
    assert data["derivationVersion"] == DERIVATION_VERSION
    assert data["sourceHash"] == compute_build_source_hash(b)

    second = cache.get_transfers(b)
    assert second == first
    assert path.read_bytes() == written, "a cache hit must not rewrite the file"
    # no temp files left behind
    assert [p.name for p in tmp_path.iterdir()] == [path.name]


def test_notes_edit_keeps_cache_valid(tmp_path):
    cache = DerivedCache(tmp_path)
    b = tortilla_build()
    cache.get_transfers(b)
    written = cache.path_for(b.id).read_bytes()

    steps = tortilla_steps()
    steps[0]["notes"] = "grab from the walk-in"
    edited = make_build(steps, "tortilla")
    cache.get_transfers(edited)
    assert cache.path_for(b.id).read_bytes() == written


def test_structural_edit_invalidates(tmp_path):
    cache = DerivedCache(tmp_path)
    b = tortilla_build()
    cache.get_transfers(b)

    steps = tortilla_steps()
    steps[2]["workLocation"] = {"type": "work_surface"}
    edited = make_build(steps, "tortilla")
    transfers = cache.get_transfers(edited)

    assert cache.read(b.id).source_hash == compute_build_source_hash(edited)
    assert [t.id for t in transfers] == ["transfer-s1__s2"]


def test_version_mismatch_recomputes(tmp_path):
    cache = DerivedCache(tmp_path)
    b = tortilla_build()
    cache.get_transfers(b)
    path = cache.path_for(b.id)
    data = json.loads(path.read_text(encoding="utf-8"))
    data["derivationVersion"] = "transfers/v1"
    path.write_text(json.dumps(data), encoding="utf-8")

    cache.get_transfers(b)
    assert cache.read(b.id).derivation_version == DERIVATION_VERSION


def test_corrupt_cache_file_is_a_miss(tmp_path):
    cache = DerivedCache(tmp_path)
    b = tortilla_build()
    cache.path_for(b.id).write_text("{not json", encoding="utf-8")
    assert cache.read(b.id) is None

    transfers = cache.get_transfers(b)
    assert len(transfers) == 2
    assert cache.read(b.id) is not None


def test_sync_derivation_is_deterministic():
    b = tortilla_build()
    one = [t.model_dump_json() for t in get_derived_transfers_sync(b)]
    two = [t.model_dump_json() for t in get_derived_transfers_sync(b)]
    assert one == two
