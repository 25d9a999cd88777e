from rigdef.document import Beam, Cinecam, Module, NodeDef, RigDocument, Section, WheelDef
from rigdef.node_refs import ByName, ByNumber, Slot, Unresolved
from rigdef.sequential import SequentialResolver


def _doc(order):
    secs = {
        "nodes": Section("nodes", [NodeDef(ByNumber(i)) for i in range(6)]),
        "nodes2": Section("nodes2", [NodeDef(ByName("hub_l")), NodeDef(ByName("hub_r"))]),
        "cinecam": Section("cinecam", [Cinecam(nodes=[ByNumber(0)] * 8)]),
        "beams": Section("beams", [Beam(nodes=[ByNumber(0), ByName("hub_r")])]),
    }
    return RigDocument("d", [Module("_root_", [secs[k] for k in order])])


def test_probe_nodes2_first():
    a, b = SequentialResolver(), SequentialResolver()
    da, db = _doc(["nodes", "nodes2", "cinecam", "beams"]), _doc(["nodes2", "cinecam", "beams", "nodes"])
    a.process(da); b.process(db)
    assert a.dump_node_table() == b.dump_node_table()
    assert da.modules[0].sections[3].entries[0].nodes == db.modules[0].sections[2].entries[0].nodes


def test_probe_default_no_fallback():
    d = RigDocument("d", [Module("_root_", [
        Section("nodes", [NodeDef(ByNumber(i)) for i in range(3)]),
        Section("cinecam", [Cinecam(nodes=[ByNumber(0)] * 8)]),
        Section("beams", [Beam(nodes=[ByNumber(3)])])])])
    r = SequentialResolver(); r.process(d)
    assert d.modules[0].sections[2].entries[0].nodes == [Unresolved(ByNumber(3))]
    assert r.error_count() == 1


def test_probe_disabled_unchanged():
    d = _doc(["nodes", "nodes2", "cinecam", "beams"])
    r = SequentialResolver(); r.init(False); r.process(d)
    assert d.modules[0].sections[3].entries[0].nodes == [ByNumber(0), ByName("hub_r")]


def test_probe_self_ref_wheel():
    d = RigDocument("d", [Module("_root_", [
        Section("nodes", [NodeDef(ByNumber(i)) for i in range(3)]),
        Section("wheels", [WheelDef(num_rays=0, axis_nodes=[ByNumber(0), ByNumber(1)])])])])
    r = SequentialResolver(); r.process(d)
    assert r.error_count() == 0
    print(r.dump_node_table(), r.wheel_registrations())
