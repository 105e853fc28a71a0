"""Tests for the schema document loader."""

import os

import pytest

from ksymodel.schema import parse, parse_file
from ksymodel.schema.errors import (
    ErrorKind,
    InvalidEndiannessError,
    InvalidEnumCodeError,
    InvalidRepeatError,
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
    MissingRepeatExprError,
    MissingRepeatUntilError,
    SchemaError,
)
from ksymodel.schema.parser import build_enum_table, load, resolve_repeat
from ksymodel.schema.types import Endian, KaiTai, Meta, Repeat, Seq, TypeDef, TypeRef

FILE_DIR = os.path.dirname(os.path.realpath(__file__))


def describe_animal_record():
    def parses_the_whole_document(expect):
        doc = parse_file(f"{FILE_DIR}/animal_record.ksy")

        expected = KaiTai(
            meta=Meta(id="animal_record", endian=Endian.BE),
            seq=[
                Seq(id="uuid", size="16"),
                Seq(id="name", size="24", type=TypeRef.named("str"), encoding="UTF-8"),
                Seq(id="birth_year", type=TypeRef.named("u2")),
                Seq(id="weight", type=TypeRef.named("f8")),
                Seq(id="rating", type=TypeRef.named("s4"), doc="Rating, can be negative"),
                Seq(
                    id="name",
                    size="16",
                    type=TypeRef.named("str"),
                    encoding="UTF-8",
                    terminator="0",
                ),
                Seq(id="has_crc32", type=TypeRef.named("u1")),
                Seq(id="crc32", type=TypeRef.named("u4"), if_="has_crc32 != 0"),
            ],
            enums={"ip_protocol": {1: "icmp", 6: "tcp", 17: "udp"}},
            types={
                "str_with_len": TypeDef(
                    seq=[
                        Seq(id="len", type=TypeRef.named("u4")),
                        Seq(id="value", type=TypeRef.named("str"), encoding="UTF-8", size="len"),
                    ]
                )
            },
        )
        expect(doc) == expected

    def keeps_duplicate_field_ids(expect):
        doc = parse_file(f"{FILE_DIR}/animal_record.ksy")
        names = [field for field in doc.seq if field.id == "name"]
        expect(len(names)) == 2
        expect(names[0].size) == "24"
        expect(names[1].size) == "16"
        expect(names[1].terminator) == "0"

    def leaves_untyped_fields_raw(expect):
        doc = parse_file(f"{FILE_DIR}/animal_record.ksy")
        expect(doc.seq[0].type) == None
        expect(doc.seq[0].is_raw) == True
        expect(doc.seq[1].is_raw) == False


def describe_meta():
    def defaults_to_little_endian(expect):
        doc = parse("meta:\n  id: x\nseq: []\n")
        expect(doc.meta.endian) == None
        expect(doc.meta.byte_order) == Endian.LE

    def reads_big_endian(expect):
        doc = parse("meta:\n  id: x\n  endian: be\n")
        expect(doc.meta.byte_order) == Endian.BE

    def rejects_unknown_endianness(expect):
        with pytest.raises(InvalidEndiannessError) as exc:
            parse("meta:\n  id: x\n  endian: xx\n")
        expect(exc.value.path) == ("meta", "endian")

    def requires_meta(expect):
        with pytest.raises(MissingFieldError) as exc:
            parse("seq: []\n")
        expect(exc.value.path) == ("meta",)

    def requires_an_id(expect):
        with pytest.raises(MissingFieldError) as exc:
            parse("meta:\n  endian: le\n")
        expect(exc.value.path) == ("meta", "id")

    def rejects_an_empty_id(expect):
        with pytest.raises(MissingFieldError):
            parse("meta:\n  id: ''\n")

    def reads_descriptive_keys(expect):
        doc = parse("meta:\n  id: x\n  title: X format\n  file-extension: xf\n  license: MIT\n")
        expect(doc.meta.title) == "X format"
        expect(doc.meta.file_extension) == "xf"
        expect(doc.meta.license) == "MIT"
        expect(doc.meta.encoding) == None


def describe_document():
    def allows_a_missing_seq(expect):
        doc = parse("meta:\n  id: empty\n")
        expect(doc.seq) == ()
        expect(doc.enums) == None
        expect(doc.types) == None

    def ignores_unknown_top_level_keys(expect):
        doc = parse("meta:\n  id: x\ninstances:\n  foo:\n    pos: 0\n")
        expect(doc.id) == "x"

    def loads_an_already_read_tree(expect):
        doc = load({"meta": {"id": "tree"}, "seq": [{"id": "a", "type": "u1"}]})
        expect(doc.seq) == (Seq(id="a", type=TypeRef.named("u1")),)

    def stores_seq_as_a_tuple(expect):
        doc = load({"meta": {"id": "tree"}, "seq": [{"id": "a"}]})
        with pytest.raises(AttributeError):
            doc.seq.append(Seq(id="b"))  # type: ignore[attr-defined]
        expect(KaiTai(meta=Meta(id="x"), seq=[Seq(id="a")]).seq) == (Seq(id="a"),)

    def rejects_a_non_mapping_document(expect):
        with pytest.raises(MalformedDocumentError):
            parse("- just\n- a list\n")

    def rejects_a_non_list_seq(expect):
        with pytest.raises(MalformedDocumentError) as exc:
            parse("meta:\n  id: x\nseq:\n  id: a\n")
        expect(exc.value.path) == ("seq",)

    def wraps_yaml_errors(expect):
        with pytest.raises(MalformedDocumentError) as exc:
            parse("meta: [unclosed\n")
        expect(exc.value.kind) == ErrorKind.MALFORMED_DOCUMENT
        expect(exc.value.__cause__ is not None) == True

    def rejects_files_that_are_not_utf8(expect, tmp_path):
        path = tmp_path / "latin1.ksy"
        path.write_bytes(b"meta:\n  id: x\ndoc: caf\xe9\n")
        with pytest.raises(MalformedDocumentError) as exc:
            parse_file(path)
        expect(exc.value.kind) == ErrorKind.MALFORMED_DOCUMENT
        expect(isinstance(exc.value.__cause__, UnicodeDecodeError)) == True


def describe_fields():
    def requires_an_id(expect):
        with pytest.raises(MissingFieldError) as exc:
            parse("meta:\n  id: x\nseq:\n  - type: u1\n")
        expect(exc.value.path) == ("seq", 0, "id")

    def keeps_scalar_attributes_as_text(expect):
        doc = parse("meta:\n  id: x\nseq:\n  - id: a\n    size: 4\n    terminator: 10\n")
        expect(doc.seq[0].size) == "4"
        expect(doc.seq[0].terminator) == "10"

    def keeps_numbers_as_written(expect):
        doc = parse("meta:\n  id: x\nseq:\n  - id: a\n    size: 010\n    terminator: 0x0a\n    doc: 1.50\n")
        expect(doc.seq[0].size) == "010"
        expect(doc.seq[0].terminator) == "0x0a"
        expect(doc.seq[0].doc) == "1.50"

    def does_not_read_yaml_1_1_scalars(expect):
        doc = parse(
            "meta:\n  id: x\nseq:\n  - id: a\n    doc: 1:30\n    if: 2020-01-01\n    size: 0b101\n    enum: yes\n"
        )
        expect(doc.seq[0].doc) == "1:30"
        expect(doc.seq[0].if_) == "2020-01-01"
        expect(doc.seq[0].size) == "0b101"
        expect(doc.seq[0].enum) == "yes"

    def rejects_structured_text_attributes(expect):
        with pytest.raises(InvalidValueError) as exc:
            parse("meta:\n  id: x\nseq:\n  - id: a\n    size: [1, 2]\n")
        expect(exc.value.path) == ("seq", 0, "a", "size")

    def reads_size_eos(expect):
        doc = parse("meta:\n  id: x\nseq:\n  - id: rest\n    size-eos: true\n")
        expect(doc.seq[0].size_eos) == True

    def rejects_non_boolean_size_eos(expect):
        with pytest.raises(InvalidValueError):
            parse("meta:\n  id: x\nseq:\n  - id: rest\n    size-eos: maybe\n")

    def reads_a_switch_type(expect):
        doc = parse(
            """
meta:
  id: testing
seq:
  - id: rec_type
    type: u1
  - id: len
    type: u4
  - id: body
    size: len
    type:
      switch-on: rec_type
      cases:
        1: rec_type_1
        2: rec_type_2
"""
        )
        body = doc.seq[2]
        expect(body.size) == "len"
        expect(body.type) == TypeRef.switch_on("rec_type", {1: "rec_type_1", 2: "rec_type_2"})

    def fails_on_a_broken_switch(expect):
        with pytest.raises(SchemaError) as exc:
            parse_file(f"{FILE_DIR}/broken_switch.ksy")
        expect(exc.value.kind) == ErrorKind.AMBIGUOUS_TYPE_NODE
        expect(exc.value.path) == ("seq", 0, "body", "type")


def describe_repeat():
    def reads_end_of_stream(expect):
        doc = parse("meta:\n  id: x\nseq:\n  - id: items\n    type: u1\n    repeat: eos\n")
        expect(doc.seq[0].repeat) == Repeat.EOS
        expect(doc.seq[0].repeat_expr) == None

    def reads_expression(expect):
        doc = parse(
            "meta:\n  id: x\nseq:\n  - id: matrix\n    type: f8\n"
            "    repeat: expr\n    repeat-expr: width * height\n"
        )
        expect(doc.seq[0].repeat) == Repeat.EXPR
        expect(doc.seq[0].repeat_expr) == "width * height"

    def reads_until(expect):
        doc = parse(
            "meta:\n  id: x\nseq:\n  - id: records\n    type: buf\n"
            "    repeat: until\n    repeat-until: _.len == 0\n"
        )
        expect(doc.seq[0].repeat) == Repeat.UNTIL
        expect(doc.seq[0].repeat_until) == "_.len == 0"

    def no_repeat_key_means_once(expect):
        doc = parse("meta:\n  id: x\nseq:\n  - id: a\n    type: u1\n")
        expect(doc.seq[0].repeat) == None
        expect(doc.seq[0].is_repeated) == False

    def empty_repeat_means_end_of_stream(expect):
        expect(resolve_repeat({"repeat": None})) == Repeat.EOS

    def requires_repeat_expr(expect):
        with pytest.raises(MissingRepeatExprError) as exc:
            parse("meta:\n  id: x\nseq:\n  - id: a\n    repeat: expr\n")
        expect(exc.value.path) == ("seq", 0, "a")

    def requires_repeat_until(expect):
        with pytest.raises(MissingRepeatUntilError):
            parse("meta:\n  id: x\nseq:\n  - id: a\n    repeat: until\n")

    def rejects_unknown_modes(expect):
        with pytest.raises(InvalidRepeatError):
            parse("meta:\n  id: x\nseq:\n  - id: a\n    repeat: forever\n")

    def checks_directly_built_fields(expect):
        with pytest.raises(MissingRepeatExprError):
            Seq(id="a", repeat=Repeat.EXPR)


def describe_enums():
    def keeps_every_code(expect):
        table = build_enum_table({1: "icmp", 6: "tcp", 17: "udp"})
        expect(table) == {17: "udp", 1: "icmp", 6: "tcp"}

    def accepts_the_64_bit_range(expect):
        table = build_enum_table({2**64 - 1: "max", -(2**63): "min", 0x100: "wide"})
        expect(len(table)) == 3
        expect(table[256]) == "wide"

    def rejects_out_of_range_codes(expect):
        with pytest.raises(InvalidEnumCodeError):
            build_enum_table({2**64: "too_big"})
        with pytest.raises(InvalidEnumCodeError):
            build_enum_table({-(2**63) - 1: "too_small"})

    def rejects_non_integer_codes(expect):
        for code in ["1", 1.0, True]:
            with pytest.raises(InvalidEnumCodeError):
                build_enum_table({code: "label"})

    def rejects_codes_in_documents(expect):
        with pytest.raises(InvalidEnumCodeError) as exc:
            parse("meta:\n  id: x\nenums:\n  kind:\n    one: 1\n")
        expect(exc.value.path) == ("enums", "kind", "one")

    def keeps_the_last_duplicate(expect):
        doc = parse("meta:\n  id: x\nenums:\n  kind:\n    1: first\n    1: second\n")
        expect(doc.enums["kind"]) == {1: "second"}

    def looks_up_labels(expect):
        doc = parse_file(f"{FILE_DIR}/animal_record.ksy")
        expect(doc.enum_label("ip_protocol", 6)) == "tcp"
        expect(doc.enum_label("ip_protocol", 7)) == None
        expect(doc.enum_label("missing", 6)) == None


def describe_named_types():
    def reads_self_reference_without_inlining(expect):
        doc = parse(
            """
meta:
  id: tree
seq:
  - id: root
    type: node
types:
  node:
    seq:
      - id: num_children
        type: u1
      - id: children
        type: node
        repeat: expr
        repeat-expr: num_children
"""
        )
        node = doc.lookup_type("node")
        expect(node.seq[1].type) == TypeRef.named("node")

    def allows_forward_references(expect):
        doc = parse_file(f"{FILE_DIR}/tlv.ksy")
        expect(doc.seq[0].type.name) == "record"
        expect(list(doc.types)) == ["record", "rec_type_1", "rec_type_2"]
        expect(doc.lookup_type("rec_type_2").doc) == "A nested record list; may contain further records."

    def keeps_nested_types_in_their_own_scope(expect):
        doc = parse(
            """
meta:
  id: outer
types:
  wrapper:
    seq:
      - id: inner
        type: hidden
    types:
      hidden:
        seq:
          - id: a
            type: u1
    enums:
      mode:
        0: idle
"""
        )
        expect(doc.lookup_type("hidden")) == None
        wrapper = doc.lookup_type("wrapper")
        expect(list(wrapper.types)) == ["hidden"]
        expect(wrapper.enums) == {"mode": {0: "idle"}}

    def reports_the_path_inside_a_type(expect):
        with pytest.raises(MissingRepeatUntilError) as exc:
            parse("meta:\n  id: x\ntypes:\n  t:\n    seq:\n      - id: a\n        repeat: until\n")
        expect(exc.value.path) == ("types", "t", "seq", 0, "a")
        expect("types.t.seq[0].a" in str(exc.value)) == True
