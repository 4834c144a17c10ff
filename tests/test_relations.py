import random
import threading

from launcher.models import ModPath, ModRelationSet


def paths(*names):
    return [ModPath.parse(name) for name in names]


def test_declared_partners_start_inactive_and_sorted():
    relations = ModRelationSet(paths("c", "a", "b", "a"))

    assert relations.active == ()
    assert relations.inactive == tuple(paths("a", "b", "c"))
    assert len(relations) == 3


def test_moves_keep_lists_disjoint_and_sorted():
    relations = ModRelationSet(paths("c", "a", "b"))

    relations.move_to_active(ModPath.new("c"))
    relations.move_to_active(ModPath.new("a"))
    relations.move_to_active(ModPath.new("a"))

    assert relations.active == tuple(paths("a", "c"))
    assert relations.inactive == tuple(paths("b"))
    assert relations.has_active() and relations.has_inactive()

    relations.move_to_inactive(ModPath.new("c"))
    assert relations.active == tuple(paths("a"))
    assert relations.inactive == tuple(paths("b", "c"))


def test_moving_unknown_partner_adds_it():
    relations = ModRelationSet()

    relations.move_to_inactive(ModPath.new("wog"))

    assert ModPath.new("wog") in relations
    assert relations.inactive == (ModPath.new("wog"),)


def test_revalidate_demotes_stale_entries():
    relations = ModRelationSet(paths("a", "b"))
    relations.move_to_active(ModPath.new("a"))

    relations.revalidate(lambda path: path == ModPath.new("b"))

    assert relations.active == tuple(paths("b"))
    assert relations.inactive == tuple(paths("a"))


def test_partition_holds_under_concurrent_moves():
    names = paths("a", "b", "c", "d", "e")
    relations = ModRelationSet(names)

    def worker(seed):
        rng = random.Random(seed)
        for _ in range(500):
            path = rng.choice(names)
            if rng.random() < 0.5:
                relations.move_to_active(path)
            else:
                relations.move_to_inactive(path)

    threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    active, inactive = relations.active, relations.inactive
    assert sorted(active + inactive) == sorted(names)
    assert not set(active) & set(inactive)
    assert list(active) == sorted(active)
    assert list(inactive) == sorted(inactive)
