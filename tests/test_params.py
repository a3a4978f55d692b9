import pytest

from sidepool.params import (
    DEFAULT_STRATUM_PORT,
    MAX_LOG_LEVEL,
    Params,
    UnknownParameterError,
    parse_args,
)


def test_defaults():
    params = parse_args([])
    assert params.host == "127.0.0.1"
    assert params.rpc_port == 18081
    assert params.zmq_port == 18083
    assert params.max_outgoing_peers == 10
    assert params.max_incoming_peers == 1000
    assert params.miner_threads == 0
    assert params.block_cache is True
    assert params.auto_diff is True


def test_default_stratum_addresses_use_default_port():
    params = parse_args([])
    port = DEFAULT_STRATUM_PORT
    assert params.stratum_addresses == f"[::]:{port},0.0.0.0:{port}"


def test_explicit_stratum_addresses_kept():
    params = parse_args(["--stratum", "0.0.0.0:4444"])
    assert params.stratum_addresses == "0.0.0.0:4444"


def test_string_options():
    params = parse_args(
        [
            "--host", "node.example.com",
            "--wallet", "walletaddress",
            "--p2p", "0.0.0.0:1234",
            "--addpeers", "10.0.0.1:37889",
            "--data-api", "/tmp/api",
            "--rpc-login", "user:password",
            "--config", "pool.conf",
        ]
    )
    assert params.host == "node.example.com"
    assert params.wallet == "walletaddress"
    assert params.p2p_addresses == "0.0.0.0:1234"
    assert params.p2p_peer_list == "10.0.0.1:37889"
    assert params.api_path == "/tmp/api"
    assert params.rpc_login == "user:password"
    assert params.config == "pool.conf"


def test_port_options():
    params = parse_args(["--rpc-port", "28081", "--zmq-port", "28083"])
    assert params.rpc_port == 28081
    assert params.zmq_port == 28083


def test_non_numeric_port_becomes_zero():
    params = parse_args(["--rpc-port", "abc"])
    assert params.rpc_port == 0


def test_flags():
    params = parse_args(
        ["--light-mode", "--local-api", "--no-cache", "--no-color",
         "--no-randomx", "--mini", "--no-autodiff"]
    )
    assert params.light_mode is True
    assert params.local_stats is True
    assert params.block_cache is False
    assert params.console_colors is False
    assert params.disable_randomx is True
    assert params.mini is True
    assert params.auto_diff is False


def test_stratum_api_sets_local_stats():
    assert parse_args(["--stratum-api"]).local_stats is True


@pytest.mark.parametrize(
    "option, value, field, expected",
    [
        ("--out-peers", "5", "max_outgoing_peers", 10),
        ("--out-peers", "50", "max_outgoing_peers", 50),
        ("--out-peers", "5000", "max_outgoing_peers", 1000),
        ("--in-peers", "1", "max_incoming_peers", 10),
        ("--in-peers", "99999", "max_incoming_peers", 1000),
        ("--start-mining", "0", "miner_threads", 1),
        ("--start-mining", "4", "miner_threads", 4),
        ("--start-mining", "200", "miner_threads", 64),
    ],
)
def test_clamped_options(option, value, field, expected):
    assert getattr(parse_args([option, value]), field) == expected


def test_negative_peer_count_wraps_to_maximum():
    assert parse_args(["--out-peers", "-5"]).max_outgoing_peers == 1000


def test_loglevel_clamped():
    assert parse_args(["--loglevel", "-3"]).log_level == 0
    assert parse_args(["--loglevel", "100"]).log_level == MAX_LOG_LEVEL
    assert parse_args(["--loglevel", "2"]).log_level == 2


def test_unknown_parameter():
    with pytest.raises(UnknownParameterError) as info:
        parse_args(["--bogus"])
    assert info.value.parameter == "--bogus"
    assert "--bogus" in str(info.value)


def test_option_missing_value_is_unknown():
    with pytest.raises(UnknownParameterError):
        parse_args(["--host"])


def test_ok_requires_wallet():
    assert parse_args([]).ok() is False
    assert parse_args(["--wallet", "walletaddress"]).ok() is True


def test_ok_requires_ports_and_host():
    assert Params(wallet="walletaddress", rpc_port=0).ok() is False
    assert Params(wallet="walletaddress", zmq_port=0).ok() is False
    assert Params(wallet="walletaddress", host="").ok() is False