import pytest

from conftest import make_item
from stockmirror import cli
from stockmirror.catalog.base import RemoteTag
from stockmirror.services.mirror import MirrorStore


@pytest.fixture()
def wired(monkeypatch, session, fake_client):
    monkeypatch.setattr(cli.CatalogClient, "from_settings", classmethod(lambda cls: fake_client))
    monkeypatch.setattr(cli, "SessionLocal", lambda: session)
    return fake_client


def test_parser_requires_reconcile_inputs():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["reconcile", "--tag", "T1"])

    args = cli.build_parser().parse_args(
        ["reconcile", "--csv", "in.csv", "--tag", "T1", "--vendor", "Vendor_Kehe", "--method", "name", "--apply"]
    )
    assert args.method == "name"
    assert args.apply is True


def test_tags_command(wired, capsys):
    wired.tags = [RemoteTag(id="T1", name="Vendor_Kehe")]

    assert cli.main(["tags"]) == 0
    assert "T1\tVendor_Kehe" in capsys.readouterr().out


def test_sync_command(wired, capsys):
    wired.items = [make_item("A"), make_item("B")]

    assert cli.main(["sync"]) == 0
    assert "fetched=2 new=2" in capsys.readouterr().out


def test_reconcile_command_applies(wired, session, tmp_path, capsys):
    oat = make_item("A", "Oat Milk", sku="111", stock=4, tag_ids=["T1"])
    wired.items = [oat]
    wired.tag_items = {"T1": [oat]}
    MirrorStore(session).upsert_item(oat)
    csv_path = tmp_path / "kehe.csv"
    csv_path.write_text("UPC,ShipQuantity\n111,6\n")

    code = cli.main(["reconcile", "--csv", str(csv_path), "--tag", "T1", "--vendor", "Vendor_Kehe", "--apply"])

    out = capsys.readouterr().out
    assert code == 0
    assert "matched=1 unmatched=0 missing_tag=0 total_delta=6" in out
    assert wired.stock_writes == [("A", 10)]


def test_command_errors_return_nonzero(wired, tmp_path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("")

    assert cli.main(["reconcile", "--csv", str(csv_path), "--tag", "T1"]) == 1
