from clan_dashboard.storage import JSONFileStore, ErrorKind, Ok, Err, load_json, save_json


def test_read_missing_key(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    result = kv.read("nothing")
    assert not result.ok
    assert result.kind is ErrorKind.MISSING
    assert result.unwrap_or([]) == []


def test_write_then_read(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    assert kv.write("k", {"a": [1, 2]}).ok
    assert kv.read("k").value == {"a": [1, 2]}
    assert kv.keys() == ["k"]
    assert kv.size("k") > 0


def test_corrupt_record_is_reported(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    (tmp_path / "k.json").write_text("{not json", encoding="utf-8")
    result = kv.read("k")
    assert result.kind is ErrorKind.CORRUPT


def test_quota_refuses_write_and_keeps_previous_value(tmp_path):
    kv = JSONFileStore(str(tmp_path), quota_bytes=64)
    assert kv.write("k", "small").ok
    result = kv.write("k", "x" * 100)
    assert result.kind is ErrorKind.QUOTA_EXCEEDED
    assert kv.read("k").value == "small"


def test_quota_counts_other_keys(tmp_path):
    kv = JSONFileStore(str(tmp_path), quota_bytes=60)
    assert kv.write("a", "y" * 40).ok
    assert not kv.write("b", "z" * 30).ok
    # Rewriting a key only counts its new size
    assert kv.write("a", "y" * 50).ok


def test_unserializable_value(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    result = kv.write("k", {"s": {1, 2}})
    assert result.kind is ErrorKind.INVALID
    assert kv.read("k").kind is ErrorKind.MISSING


def test_remove_is_idempotent(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    kv.write("k", 1)
    assert kv.remove("k").ok
    assert kv.remove("k").ok
    assert kv.keys() == []


def test_result_repr_and_unwrap():
    assert Ok(3).unwrap_or(0) == 3
    assert Err(ErrorKind.IO, "boom").unwrap_or(0) == 0
    assert "boom" in repr(Err(ErrorKind.IO, "boom"))


def test_json_file_helpers(tmp_path):
    path = str(tmp_path / "sub" / "f.json")
    assert save_json(path, {"x": 1})
    assert load_json(path) == {"x": 1}
    assert load_json(str(tmp_path / "missing.json")) is None


def test_raw_bytes_restore(tmp_path):
    kv = JSONFileStore(str(tmp_path))
    (tmp_path / "k.json").write_bytes(b"not json")
    raw = kv.read_bytes("k")
    assert kv.write("k", [1]).ok
    assert kv.restore_bytes("k", raw).ok
    assert (tmp_path / "k.json").read_bytes() == b"not json"
    assert kv.read_bytes("absent") is None
    assert kv.restore_bytes("k", None).ok
    assert kv.keys() == []
