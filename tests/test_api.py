import pytest

from sidepool.api import BUFFER_SIZE, ApiWriter, Category


def test_empty_path_is_rejected():
    with pytest.raises(ValueError):
        ApiWriter("")


def test_missing_path_is_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        ApiWriter(tmp_path / "nope")


def test_creates_network_and_pool_dirs(tmp_path):
    ApiWriter(tmp_path)
    assert (tmp_path / "network").is_dir()
    assert (tmp_path / "pool").is_dir()
    assert not (tmp_path / "local").exists()


def test_local_dir_only_with_local_stats(tmp_path):
    ApiWriter(tmp_path, local_stats=True)
    assert (tmp_path / "local").is_dir()


def test_existing_dirs_are_accepted(tmp_path):
    ApiWriter(tmp_path)
    writer = ApiWriter(tmp_path)
    assert writer.path_for(Category.POOL, "stats") == tmp_path / "pool" / "stats"


@pytest.mark.parametrize(
    "category, subdir",
    [
        (Category.NETWORK, "network"),
        (Category.POOL, "pool"),
        (Category.LOCAL, "local"),
    ],
)
def test_path_for_subdirs(tmp_path, category, subdir):
    writer = ApiWriter(tmp_path, local_stats=True)
    assert writer.path_for(category, "stats") == tmp_path / subdir / "stats"


def test_path_for_global(tmp_path):
    writer = ApiWriter(tmp_path)
    assert writer.path_for(Category.GLOBAL, "stats_mod") == tmp_path / "stats_mod"


def test_set_and_flush_writes_file(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.NETWORK, "stats", '{"height":1}')
    written = writer.flush()
    path = tmp_path / "network" / "stats"
    assert written == [path]
    assert path.read_text() == '{"height":1}'


def test_latest_content_wins(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.POOL, "blocks", "[1]")
    writer.set(Category.POOL, "blocks", "[2]")
    assert len(writer.flush()) == 1
    assert (tmp_path / "pool" / "blocks").read_text() == "[2]"


def test_flush_clears_pending(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.GLOBAL, "stats_mod", "{}")
    writer.flush()
    assert writer.flush() == []


def test_callable_content(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.POOL, "stats", lambda: "[]")
    writer.flush()
    assert (tmp_path / "pool" / "stats").read_text() == "[]"


def test_existing_file_is_truncated(tmp_path):
    writer = ApiWriter(tmp_path)
    path = tmp_path / "pool" / "stats"
    path.write_text("a much longer previous content")
    writer.set(Category.POOL, "stats", "{}")
    writer.flush()
    assert path.read_text() == "{}"


def test_content_is_limited_to_buffer_size(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.POOL, "big", b"x" * (BUFFER_SIZE + 100))
    writer.flush()
    assert len((tmp_path / "pool" / "big").read_bytes()) == BUFFER_SIZE


def test_write_failure_is_skipped(tmp_path):
    writer = ApiWriter(tmp_path)
    writer.set(Category.LOCAL, "miner", "{}")
    writer.set(Category.POOL, "stats", "{}")
    written = writer.flush()
    assert written == [tmp_path / "pool" / "stats"]
    assert not (tmp_path / "local").exists()