import random

import pytest

from hackbot.state import Roster, User
from shared.envelope import OnlineUser
from shared.MessageTypes import Level


def _names(users):
    return [u.username for u in users]


@pytest.mark.asyncio
async def test_replace_all_resets_and_preserves_order():
    roster = Roster()
    assert await roster.add(User("old")) == 1
    assert await roster.replace_all([User("bob"), User("alice"), User("carol")]) == 3
    assert _names(await roster.snapshot()) == ["bob", "alice", "carol"]
    assert len(roster) == 3


@pytest.mark.asyncio
async def test_add_keeps_duplicates_and_remove_takes_first_match():
    roster = Roster()
    assert await roster.add(User("bob", level=100)) == 1
    assert await roster.add(User("bob", level=500)) == 2
    assert _names(await roster.snapshot()) == ["bob", "bob"]

    assert await roster.remove("bob") is True
    remaining = await roster.snapshot()
    assert remaining == [User("bob", level=500)]


@pytest.mark.asyncio
async def test_remove_missing_is_noop():
    roster = Roster()
    await roster.add(User("alice"))
    assert await roster.remove("mallory") is False
    assert _names(await roster.snapshot()) == ["alice"]


@pytest.mark.asyncio
async def test_remove_matches_exact_nick_even_when_case_insensitive():
    roster = Roster(case_sensitive=False)
    await roster.add(User("Alice"))
    assert await roster.remove("alice") is False
    assert await roster.remove("Alice") is True


@pytest.mark.asyncio
async def test_find_case_policy():
    insensitive = Roster(case_sensitive=False)
    sensitive = Roster(case_sensitive=True)
    for roster in (insensitive, sensitive):
        await roster.add(User("Alice", level=9999))

    found = await insensitive.find("alice")
    assert found is not None and found.username == "Alice"
    assert await sensitive.find("alice") is None
    assert (await sensitive.find("Alice")).level == 9999


@pytest.mark.asyncio
async def test_snapshot_sorted_is_a_copy():
    roster = Roster()
    await roster.replace_all([User("bob"), User("alice"), User("carol")])
    ordered = await roster.snapshot_sorted(reverse=True)
    assert _names(ordered) == ["carol", "bob", "alice"]
    ordered.clear()
    assert len(roster) == 3


@pytest.mark.asyncio
async def test_roster_matches_list_model_for_random_event_sequences():
    rng = random.Random(1234)
    nicks = ["alice", "bob", "carol", "dave"]
    for _ in range(50):
        roster = Roster(case_sensitive=True)
        model: list[str] = []
        for _ in range(30):
            op = rng.choice(["set", "add", "add", "remove", "remove"])
            if op == "set":
                names = rng.sample(nicks, rng.randint(0, len(nicks)))
                await roster.replace_all(User(n) for n in names)
                model = list(names)
            elif op == "add":
                name = rng.choice(nicks)
                await roster.add(User(name))
                model.append(name)
            else:
                name = rng.choice(nicks)
                await roster.remove(name)
                if name in model:
                    model.remove(name)
        assert _names(await roster.snapshot()) == model


def test_user_from_online_and_levels():
    user = User.from_online(OnlineUser(nick="mod", level=int(Level.CHAN_MOD), trip="xyz"))
    assert user == User("mod", level=9999, trip="xyz")
    assert user.has_level(Level.TRUSTED)
    assert user.has_level(Level.CHAN_MOD)
    assert not user.has_level(Level.CHAN_OWNER)
    assert User("guest").has_level(Level.DEFAULT)
