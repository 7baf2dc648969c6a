import base64

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from app.services.telebirr import (
    PSS_SALT_LENGTH,
    build_sign_string,
    create_nonce_str,
    create_timestamp,
    format_value,
    load_private_key,
    sign_request,
)


@pytest.fixture(scope="module")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def private_pem(private_key) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _order_request() -> dict:
    return {
        "timestamp": "1700000000",
        "nonce_str": "abc123",
        "method": "payment.preorder",
        "version": "1.0",
        "sign_type": "SHA256WithRSA",
        "sign": "",
        "biz_content": {
            "appid": "850000000001",
            "merch_code": "245445",
            "merch_order_id": "ORD-42",
            "trade_type": "Checkout",
            "title": "Digital Marketing 101",
            "total_amount": "250",
            "trans_currency": "ETB",
            "timeout_express": "120m",
        },
    }


def test_sign_string_is_sorted_and_flattened():
    text = build_sign_string(_order_request())

    assert text == (
        "appid=850000000001&merch_code=245445&merch_order_id=ORD-42&method=payment.preorder"
        "&nonce_str=abc123&timeout_express=120m&timestamp=1700000000&title=Digital Marketing 101"
        "&total_amount=250&trade_type=Checkout&trans_currency=ETB&version=1.0"
    )


def test_sign_string_drops_excluded_fields():
    request = {
        "a": "1",
        "sign": "old",
        "sign_type": "x",
        "header": "h",
        "refund_info": "r",
        "openType": "o",
        "raw_request": "raw",
        "wallet_reference_data": "w",
        "biz_content": {"b": "2", "sign": "nested"},
    }

    assert build_sign_string(request) == "a=1&b=2"


def test_sign_string_ignores_input_key_order():
    request = _order_request()
    reversed_request = dict(reversed(list(request.items())))
    reversed_request["biz_content"] = dict(reversed(list(request["biz_content"].items())))

    assert build_sign_string(reversed_request) == build_sign_string(request)


def test_sign_string_without_biz_content():
    assert build_sign_string({"b": 2, "a": 1}) == "a=1&b=2"
    assert build_sign_string({}) == ""


def test_signature_verifies_with_pss(private_key, private_pem):
    request = _order_request()
    signature = base64.b64decode(sign_request(request, private_pem))

    private_key.public_key().verify(
        signature,
        build_sign_string(request).encode("utf-8"),
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
        hashes.SHA256(),
    )

    with pytest.raises(InvalidSignature):
        private_key.public_key().verify(
            signature,
            b"tampered",
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
            hashes.SHA256(),
        )


def test_load_private_key_rejects_non_rsa_keys():
    ec_pem = ec.generate_private_key(ec.SECP256R1()).private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    with pytest.raises(ValueError):
        load_private_key(ec_pem)


def test_nonce_and_timestamp_shapes():
    nonce = create_nonce_str()
    assert len(nonce) == 32
    assert nonce != create_nonce_str()
    assert create_timestamp().isdigit()


def test_key_in_both_levels_is_emitted_twice_with_nested_value():
    request = {"appid": "1", "method": "payment.preorder", "biz_content": {"appid": "2", "amount": "10"}}

    assert build_sign_string(request) == "amount=10&appid=2&appid=2&method=payment.preorder"


def test_values_render_like_the_gateway_signer():
    request = {"appid": "1", "notify": True, "biz_content": {"appid": "2", "x": None, "paid": False}}

    assert build_sign_string(request) == "appid=2&appid=2&notify=true&paid=false&x=null"


def test_format_value():
    assert format_value(250.0) == "250"
    assert format_value(12.5) == "12.5"
    assert format_value(7) == "7"
    assert format_value(["a", None, 1]) == "a,,1"
    assert format_value({"k": "v"}) == "[object Object]"
