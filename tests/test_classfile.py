import pytest

from classgen import ClassBuilder, ConstantPoolBuilder, encode_modified_utf8
from locscan.classfile import ClassConstant, ClassFile, decode_modified_utf8
from locscan.errors import BodyDecodeError, ClassFormatError


def test_parse_class_name_and_methods() -> None:
    builder = ClassBuilder("com/example/ui/MainWindow")
    builder.constructor().return_()
    builder.method("show", "(I)V").return_()
    builder.abstract_method("render")

    class_file = ClassFile.parse(builder.build(), source="MainWindow.class")

    assert class_file.name == "com/example/ui/MainWindow"
    assert class_file.simple_name == "MainWindow"
    assert class_file.dotted_name == "com.example.ui.MainWindow"
    assert class_file.super_name == "java/lang/Object"
    assert class_file.major_version == 52
    assert [m.name for m in class_file.methods] == ["<init>", "show", "render"]
    assert class_file.methods[0].is_constructor
    assert class_file.methods[1].descriptor == "(I)V"
    assert class_file.methods[2].is_abstract
    assert not class_file.methods[2].has_code
    assert class_file.methods[2].code() == b""


def test_parse_rejects_bad_magic() -> None:
    with pytest.raises(ClassFormatError, match="not a class file"):
        ClassFile.parse(b"\x00\x01\x02\x03" + b"\x00" * 16)


def test_parse_rejects_truncated_input() -> None:
    data = ClassBuilder("Short").build()
    with pytest.raises(ClassFormatError):
        ClassFile.parse(data[:20])
    with pytest.raises(ClassFormatError):
        ClassFile.parse(b"\xca\xfe")


def test_long_constants_take_two_slots() -> None:
    pool = ConstantPoolBuilder()
    long_index = pool.long(1 << 40)
    after = pool.string("after")
    assert after == long_index + 3  # long uses two slots, then utf8 before string

    builder = ClassBuilder("Longs")
    builder.pool = pool
    class_file = ClassFile.parse(builder.build())

    assert class_file.constant_pool.loadable(long_index) == (True, 1 << 40)
    assert class_file.constant_pool.loadable(after) == (True, "after")


def test_loadable_class_constant() -> None:
    builder = ClassBuilder("Refs")
    index = builder.pool.class_ref("java/lang/String")
    class_file = ClassFile.parse(builder.build())

    ok, value = class_file.constant_pool.loadable(index)
    assert ok
    assert value == ClassConstant("java/lang/String")


def test_modified_utf8_round_trip() -> None:
    text = "nul\x00 and emoji \U0001F600 and umlaut ü"
    raw = encode_modified_utf8(text)
    assert b"\x00" not in raw
    assert decode_modified_utf8(raw) == text


def test_truncated_code_attribute_is_a_body_error() -> None:
    builder = ClassBuilder("Broken")
    builder.raw_method("ok", b"\xb1")
    class_file = ClassFile.parse(builder.build())
    method = class_file.methods[0]
    broken = type(method)(method.access_flags, method.name, method.descriptor, b"\x00\x01")

    assert method.code() == b"\xb1"
    with pytest.raises(BodyDecodeError):
        broken.code()
