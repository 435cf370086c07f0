from unittest import mock

from proxy_stream.core.config import RelayConfig
from proxy_stream.core.lib import RelayServer, RelayStats, relay_server
from proxy_stream.core.lib.relay_ui import RelayUI, create_relay_ui


def test_table_reports_statistics():
    stats = RelayStats()
    stats.session_started()
    stats.record_upstream(2048)
    ui = RelayUI(RelayConfig(max_connections=10, skip_count=1), stats)

    table = ui._generate_table()

    assert table.row_count == 9
    assert "1 / 10" in table.columns[1]._cells


def test_dashboard_thread_stops():
    ui = create_relay_ui(RelayConfig(), RelayStats())

    ui.start()
    ui.stop()

    assert not ui.running
    assert not ui._thread.is_alive()


def test_run_server_stops_dashboard_on_exit():
    config = RelayConfig(listen_host="127.0.0.1", listen_port=0)
    ui = mock.Mock(spec=RelayUI)

    with mock.patch.object(relay_server, "create_relay_ui", return_value=ui), mock.patch.object(
        RelayServer, "serve_forever", side_effect=KeyboardInterrupt
    ):
        relay_server.run_server(config, RelayStats(), dashboard=True)

    ui.start.assert_called_once_with()
    ui.stop.assert_called_once_with()
