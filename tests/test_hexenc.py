from sqlbun.hexenc import HexEncoder


def test_empty_is_null():
    enc = HexEncoder()
    enc.close()
    assert enc.getvalue() == b"NULL"


def test_empty_keeps_prefix():
    enc = HexEncoder(b"SELECT ")
    enc.close()
    assert enc.getvalue() == b"SELECT NULL"


def test_single_write():
    enc = HexEncoder()
    assert enc.write(b"hello") == 5
    enc.close()
    assert enc.getvalue() == b"'\\x" + b"hello".hex().encode() + b"'"


def test_multiple_writes_equal_single_write():
    a = HexEncoder(b"x=")
    a.write(b"foo")
    a.write(b"bar")
    a.close()
    b = HexEncoder(b"x=")
    b.write(b"foobar")
    b.close()
    assert a.getvalue() == b.getvalue()


def test_prefix_preserved():
    enc = HexEncoder(b"VALUES (")
    enc.write(b"\x00\xff")
    enc.close()
    value = enc.getvalue()
    assert value.startswith(b"VALUES ('\\x")
    assert value.endswith(b"'")
    assert bytes.fromhex(value[len(b"VALUES ('\\x"):-1].decode()) == b"\x00\xff"


def test_context_manager_closes():
    with HexEncoder() as enc:
        enc.write(b"\x01")
    assert enc.getvalue().endswith(b"'")