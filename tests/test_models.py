import threading

import pytest
from pytest import mark

from ircbus import events
from ircbus.bus import EventBus
from ircbus.models import Channel, PrivLevel, User
from ircbus.parsing import Message


def receive(line):
    return events.create_event(Message.parse(line))


def names(channel, payload, name=None):
    channel.on_reply(receive(':irc.example.net 353 me = {} :{}'.format(name or channel.name, payload)))


@pytest.fixture
def channel():
    return Channel('#main')


## Basics.


def test_channel_attributes():
    channel = Channel('#main', 'hunter2')
    assert channel.name == '#main'
    assert channel.key == 'hunter2'
    assert channel.get_nicks() == []
    assert Channel('#main').key is None


def test_channel_requires_name():
    with pytest.raises(ValueError):
        Channel('')


def test_channel_matches_name(channel):
    assert channel.matches_name('#main')
    assert not channel.matches_name('#other')
    assert channel != '#main'


def test_set_nick_as(channel):
    channel.set_nick_as('alice', PrivLevel.Op)
    channel.set_nick_as('bob', PrivLevel.Regular)
    assert channel.is_op('alice')
    assert not channel.is_regular('alice')
    assert channel.is_regular('bob')

    channel.set_nick_as('alice', PrivLevel.Regular)
    assert channel.is_regular('alice')
    assert sorted(channel.get_regular_nicks()) == ['alice', 'bob']
    assert channel.get_operator_nicks() == []


def test_snapshots_are_copies(channel):
    channel.set_nick_as('alice', PrivLevel.Op)
    nicks = channel.get_nicks()
    nicks.append('mallory')
    assert channel.get_nicks() == ['alice']


def test_repr(channel):
    channel.set_nick_as('alice', PrivLevel.Op)
    assert repr(channel) == "Channel(name='#main', key=None, nicks=[User(nickname='alice', priv_level=Op)])"
    assert repr(User('bob')) == "User(nickname='bob', priv_level=Regular)"


## Names replies.


def test_names_reply_populates(channel):
    names(channel, '@alice bob +carol @+dave')
    assert sorted(channel.get_nicks()) == ['alice', 'bob', 'carol', 'dave']
    assert sorted(channel.get_operator_nicks()) == ['alice', 'dave']
    assert sorted(channel.get_regular_nicks()) == ['bob', 'carol']


def test_names_reply_is_authoritative(channel):
    channel.set_nick_as('alice', PrivLevel.Op)
    names(channel, 'alice')
    assert channel.is_regular('alice')
    assert not channel.is_op('alice')

    names(channel, '@alice')
    assert channel.is_op('alice')


def test_names_reply_other_channel(channel):
    names(channel, '@alice bob', name='#other')
    assert channel.get_nicks() == []


def test_other_replies_ignored(channel):
    channel.on_reply(receive(':irc.example.net 366 me #main :End of /NAMES list.'))
    channel.on_reply(receive(':irc.example.net 001 me :Welcome'))
    assert channel.get_nicks() == []


## Joins, parts, kicks.


def test_join_adds_regular(channel):
    channel.on_join(receive(':alice!a@h JOIN #main'))
    assert channel.is_regular('alice')


def test_join_never_downgrades(channel):
    names(channel, '@bob')
    channel.on_join(receive(':bob!b@h JOIN #main'))
    assert channel.is_op('bob')


def test_join_other_channel(channel):
    channel.on_join(receive(':alice!a@h JOIN #other'))
    assert channel.get_nicks() == []


def test_part_removes(channel):
    names(channel, '@carol dave')
    channel.on_part(receive(':carol!c@h PART #main :bye'))
    assert not channel.is_op('carol')
    assert not channel.is_regular('carol')
    assert 'carol' not in channel.get_nicks()
    assert channel.get_nicks() == ['dave']


def test_part_absent_is_noop(channel):
    names(channel, 'dave')
    channel.on_part(receive(':carol PART #main'))
    assert channel.get_nicks() == ['dave']
    assert not channel.remove_nick('carol')


def test_part_other_channel(channel):
    names(channel, 'carol')
    channel.on_part(receive(':carol PART #other'))
    assert channel.is_regular('carol')


def test_kick_removes(channel):
    names(channel, '@op carol')
    channel.on_kick(receive(':op!o@h KICK #main carol :behave'))
    assert channel.get_nicks() == ['op']

    channel.on_kick(receive(':op!o@h KICK #other op'))
    assert channel.get_nicks() == ['op']


## Modes.


def test_mode_op_and_deop(channel):
    names(channel, 'dave @erin')
    channel.on_channel_mode(receive(':op MODE #main +o dave'))
    assert channel.is_op('dave')

    channel.on_channel_mode(receive(':op MODE #main -o erin'))
    assert channel.is_regular('erin')


def test_mode_several_nicks(channel):
    names(channel, 'dave erin')
    channel.on_channel_mode(receive(':op MODE #main +oo dave erin'))
    assert sorted(channel.get_operator_nicks()) == ['dave', 'erin']


def test_mode_applies_to_every_param(channel):
    names(channel, 'alice bob')
    channel.on_channel_mode(receive(':op MODE #main +ov alice bob'))
    assert channel.is_op('alice')
    assert channel.is_op('bob')

    channel.on_channel_mode(receive(':op MODE #main -ov alice bob'))
    assert sorted(channel.get_regular_nicks()) == ['alice', 'bob']


def test_mode_only_leading_operator_flag_counts(channel):
    names(channel, 'alice bob tim')
    channel.on_channel_mode(receive(':op MODE #main +qo bob tim'))
    assert channel.get_operator_nicks() == []

    channel.on_channel_mode(receive(':op MODE #main +oq alice bob'))
    assert channel.is_op('alice')


def test_mode_other_flags_are_ignored(channel):
    names(channel, '@alice bob')
    channel.on_channel_mode(receive(':op MODE #main +v bob'))
    channel.on_channel_mode(receive(':op MODE #main +l 20'))
    channel.on_channel_mode(receive(':op MODE #main -v+o alice'))
    assert channel.is_op('alice')
    assert channel.is_regular('bob')


def test_mode_never_adds(channel):
    channel.on_channel_mode(receive(':op MODE #main +o dave'))
    assert channel.get_nicks() == []


def test_mode_other_channel(channel):
    names(channel, 'dave')
    channel.on_channel_mode(receive(':op MODE #other +o dave'))
    assert channel.is_regular('dave')


def test_mode_without_nicknames(channel):
    names(channel, 'dave')
    channel.on_channel_mode(receive(':op MODE #main +o'))
    channel.on_channel_mode(receive(':op MODE #main'))
    assert channel.is_regular('dave')


## Nick changes.


def test_nick_change_is_not_followed(channel):
    names(channel, '@alice')
    assert not hasattr(channel, 'on_nick')

    bus = EventBus()
    bus.subscribe(channel)
    bus.dispatch(Message.parse(':alice!a@h NICK alicia'))
    assert channel.get_nicks() == ['alice']
    assert channel.is_op('alice')


## Through the bus.


def test_channels_on_bus_are_scoped():
    bus = EventBus()
    main = Channel('#main')
    other = Channel('#other')
    bus.subscribe(main)
    bus.subscribe(other)

    for line in [
        ':irc.example.net 353 me = #main :dave @erin',
        ':irc.example.net 353 me = #other :dave',
        ':op MODE #other +o dave',
        ':frank JOIN #main',
        ':erin PART #other',
    ]:
        bus.dispatch(Message.parse(line))

    assert main.is_regular('dave')
    assert other.is_op('dave')
    assert sorted(main.get_nicks()) == ['dave', 'erin', 'frank']
    assert main.is_op('erin')


## Concurrency.


@mark.slow
def test_concurrent_updates_are_atomic(channel):
    everyone = ['user{}'.format(i) for i in range(50)]
    ops = ' '.join('@' + nick for nick in everyone)
    regulars = ' '.join(everyone)
    names(channel, regulars)

    stop = threading.Event()
    errors = []

    def flip():
        while not stop.is_set():
            names(channel, ops)
            names(channel, regulars)

    def churn():
        while not stop.is_set():
            channel.on_join(receive(':visitor JOIN #main'))
            channel.on_part(receive(':visitor PART #main'))

    def read():
        while not stop.is_set():
            count = len(channel.get_operator_nicks())
            if count not in (0, len(everyone)):
                errors.append(count)
            nicks = set(channel.get_nicks())
            if not set(everyone) <= nicks:
                errors.append(nicks)

    threads = [threading.Thread(target=target) for target in (flip, churn, read, read)]
    for thread in threads:
        thread.start()
    stop.wait(1)
    stop.set()
    for thread in threads:
        thread.join()

    assert errors == []
