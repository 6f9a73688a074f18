import pytest

from slvnet.template_parser import (
    BlockDefinition,
    Cardinality,
    Encoding,
    FieldDefinition,
    Frequency,
    MessageTemplate,
    TemplateParseError,
    TrustLevel,
    parse,
)


def test_parse_simple_message():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
    {
        TestBlock1 Single
        {   Test1   U32 }
    }
}
"""
    result = parse(text)
    assert len(result.messages) == 1
    message = result.messages[0]
    assert message.name == "TestMessage"
    assert message.frequency is Frequency.LOW
    assert message.id == 1
    assert message.trust is TrustLevel.NOT_TRUSTED
    assert message.encoding is Encoding.ZEROCODED
    assert message.flags == []
    assert len(message.blocks) == 1
    block = message.blocks[0]
    assert block.name == "TestBlock1"
    assert block.cardinality is Cardinality.SINGLE
    assert block.count is None
    assert block.fields == [FieldDefinition("Test1", "U32")]


def test_parse_hex_message_id():
    text = """
{
    PacketAck Fixed 0xFFFFFFFB NotTrusted Unencoded
    {
        Packets Variable
        {   ID  U32 }
    }
}
"""
    result = parse(text)
    assert len(result.messages) == 1
    message = result.messages[0]
    assert message.name == "PacketAck"
    assert message.frequency is Frequency.FIXED
    assert message.id == 0xFFFFFFFB
    assert message.flags == []
    assert message.blocks[0].cardinality is Cardinality.VARIABLE


def test_parse_multiple_cardinality():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
    {
        NeighborBlock Multiple 4
        {   Test0   U32 }
        {   Test1   U32 }
    }
}
"""
    block = parse(text).messages[0].blocks[0]
    assert block.cardinality is Cardinality.MULTIPLE
    assert block.count == 4
    assert len(block.fields) == 2


def test_parse_error_invalid_frequency():
    text = """
{
    TestMessage InvalidFreq 1 NotTrusted Zerocoded
    {
        TestBlock1 Single
        {   Test1   U32 }
    }
}
"""
    with pytest.raises(TemplateParseError) as excinfo:
        parse(text)
    assert "Unknown frequency" in str(excinfo.value)


def test_parse_message_with_flags():
    text = """
{
    OpenCircuit Fixed 0xFFFFFFFC NotTrusted Unencoded UDPBlackListed
    {
        CircuitInfo Single
        {   IP      IPADDR  }
        {   Port    IPPORT  }
    }
}
"""
    message = parse(text).messages[0]
    assert message.name == "OpenCircuit"
    assert message.frequency is Frequency.FIXED
    assert message.id == 0xFFFFFFFC
    assert message.trust is TrustLevel.NOT_TRUSTED
    assert message.encoding is Encoding.UNENCODED
    assert message.flags == ["UDPBlackListed"]
    assert [f.name for f in message.blocks[0].fields] == ["IP", "Port"]


def test_parse_comments_ignored():
    text = """
// This is a comment
version 2.0
// Another comment

{
    TestMessage Low 1 NotTrusted Zerocoded
    {
        TestBlock1 Single
        {   Test1   U32 }
    }
}
"""
    assert len(parse(text).messages) == 1


def test_find_returns_named_message():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
}
{
    PacketAck Fixed 0xFFFFFFFB NotTrusted Unencoded
}
"""
    template = parse(text)
    assert [m.name for m in template.messages] == ["TestMessage", "PacketAck"]
    assert template.find("PacketAck").id == 0xFFFFFFFB
    assert template.find("Missing") is None


def test_unmatched_braces():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
"""
    with pytest.raises(TemplateParseError, match="Unmatched braces: depth 1"):
        parse(text)


def test_unexpected_top_level_content():
    with pytest.raises(TemplateParseError, match="Unexpected content at line 1: garbage"):
        parse("garbage\n")


def test_short_message_header():
    text = "{\n    Foo Low 1\n}\n"
    with pytest.raises(TemplateParseError, match="expected at least 5 parts, got 3"):
        parse(text)


def test_bad_trust_level_and_encoding():
    with pytest.raises(TemplateParseError, match="Unknown trust level"):
        parse("{\n Foo Low 1 Maybe Zerocoded\n}\n")
    with pytest.raises(TemplateParseError, match="Unknown encoding"):
        parse("{\n Foo Low 1 Trusted Packed\n}\n")


def test_bad_message_id():
    with pytest.raises(TemplateParseError, match="message ID"):
        parse("{\n Foo Low abc Trusted Zerocoded\n}\n")


def test_bad_cardinality():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
    {
        Block Many
    }
}
"""
    with pytest.raises(TemplateParseError, match="Unknown cardinality"):
        parse(text)


def test_variable_type_joined():
    text = """
{
    TestMessage Low 1 NotTrusted Zerocoded
    {
        Data Single
        {   Name   Variable 1 }
    }
}
"""
    field = parse(text).messages[0].blocks[0].fields[0]
    assert field.type_name == "Variable 1"


def test_from_name_round_trip():
    for enum_cls in (Frequency, TrustLevel, Encoding, Cardinality):
        for member in enum_cls:
            assert enum_cls.from_name(member.value) is member
    with pytest.raises(ValueError, match="Unknown cardinality: Lots"):
        Cardinality.from_name("Lots")


def test_empty_content_gives_empty_template():
    assert parse("") == MessageTemplate([])
    assert BlockDefinition("B", Cardinality.SINGLE).fields == []