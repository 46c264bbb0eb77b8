"""Tests for parsing cleartool output."""

from __future__ import annotations

from opskit.clearcase import parser

from .clearcase_samples import DESCRIBE_ALPHA, LSHIST_ALPHA, LSVIEW, LSVOB, TODAY, VIEW_UUID


class TestLsvob:
    def test_records_keyed_by_basename(self):
        vobs = parser.parse_lsvob(LSVOB)
        assert sorted(vobs) == ["alpha", "beta"]
        alpha = vobs["alpha"]
        assert alpha["vob"] == "/vobs/alpha"
        assert alpha["tag"] == "alpha"
        assert alpha["gpath"] == "/net/vobhost/vobstore/alpha.vbs"
        assert alpha["host"] == "vobhost"
        assert alpha["region"] == "unix"
        assert alpha["active"] == "YES"
        assert alpha["access"] == "public"
        assert alpha["uuid"] == "1111aaaa.2222bbbb.3333.cc:dd:ee:ff:00:11"
        assert alpha["apath"] == alpha["hpath"] == "/vobstore/alpha.vbs"

    def test_windows_style_tag(self):
        vobs = parser.parse_lsvob("Tag: \\gamma\r\n  Global path: \\\\srv\\vobs\\gamma.vbs\r\n")
        assert vobs["gamma"]["vob"] == "\\gamma"
        assert vobs["gamma"]["gpath"] == "\\\\srv\\vobs\\gamma.vbs"

    def test_lines_before_first_tag_ignored(self):
        assert parser.parse_lsvob("  Global path: /x\n") == {}


class TestDescribe:
    def test_fields(self):
        desc = parser.parse_vob_descriptions(DESCRIBE_ALPHA, TODAY)["alpha"]
        assert desc["schema"] == "80"
        assert desc["family"] == "7"
        assert desc["flevel"] == "7"
        assert desc["owner"] == "vobadm"
        assert desc["group"] == "ccusers"
        assert desc["created"] == "2020-01-15"
        assert desc["age"] == "01461"
        assert desc["createdby"] == "VOB Admin vobadm.ccusers@vobhost"

    def test_view_references(self):
        views = parser.parse_vob_descriptions(DESCRIBE_ALPHA, TODAY)["alpha"]["views"]
        assert views[0] == {"host": "wshost", "path": "/views/anna_dev.vws", "uuid": VIEW_UUID}
        assert len(views) == 2

    def test_saved_description_storage_paths(self):
        desc = parser.parse_saved_vob_description(DESCRIBE_ALPHA)
        assert desc["gpath"] == "/net/vobhost/vobstore/alpha.vbs"
        assert desc["hpath"] == "vobhost:/vobstore/alpha.vbs"
        assert desc["apath"] == "/vobstore/alpha.vbs"
        assert desc["flevel"] == "7"


class TestLshist:
    def test_prefers_non_admin(self):
        last = parser.parse_lshist(LSHIST_ALPHA, "vobadm", TODAY)
        assert last == {"last": "2024-01-05", "lastby": "anna", "lastage": "00010"}

    def test_falls_back_to_admin(self):
        text = "2024-01-10T09:00:00+01:00 vobadm create version x\n"
        assert parser.parse_lshist(text, "vobadm", TODAY)["lastby"] == "vobadm"

    def test_empty(self):
        assert parser.parse_lshist("", "vobadm", TODAY) == {}


class TestLsview:
    def test_fields(self):
        views = parser.parse_lsview(LSVIEW, TODAY)
        anna = views["anna_dev"]
        assert anna["gpath"] == "/net/wshost/views/anna_dev.vws"
        assert anna["hpath"] == "/views/anna_dev.vws"
        assert anna["host"] == "wshost"
        assert anna["uuid"] == VIEW_UUID
        assert anna["type"] == "snapshot"
        assert anna["owner"] == "DOMAIN\\anna"
        assert anna["user"] == "anna"
        assert anna["created"] == "2023-06-01"
        assert anna["createdby"] == "wshost"
        assert anna["modified"] == "2023-07-01"
        assert anna["last"] == "2023-07-15"
        assert anna["age"] == "00184"
        assert anna["age_days"] == 184

    def test_defaults(self):
        views = parser.parse_lsview(LSVIEW, TODAY)
        assert views["bob_int"]["type"] == "dynamic"
        assert views["bob_int"]["user"] == "bob"
        assert views["ghost"]["age"] == "-1"
        assert views["ghost"]["age_days"] == -1


class TestFormatRecord:
    def test_missing_fields_render_empty(self):
        line, missing = parser.format_record({"tag": "a", "gpath": "/g"}, ["tag", "nope", "gpath"], ";")
        assert line == "a;;/g"
        assert missing == ["nope"]

    def test_lists_are_not_printable_fields(self):
        line, missing = parser.format_record({"tag": "a", "views": [{}]}, ["tag", "views"])
        assert line == "a "
        assert missing == ["views"]


def test_tag_basename():
    assert parser.tag_basename("/vobs/alpha") == "alpha"
    assert parser.tag_basename("\\alpha") == "alpha"
    assert parser.tag_basename("alpha") == "alpha"
