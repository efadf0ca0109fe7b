import pytest

from zk_proof import CubicZKProof, ProofRejected


def test_commitment_hex_is_deterministic(helper_module):
    c1 = helper_module.commitment_hex(100)
    c2 = helper_module.commitment_hex(100)
    assert c1 == c2
    assert len(c1) == 64


def test_generate_keypair_is_fresh(helper_module):
    a = helper_module.generate_keypair()
    b = helper_module.generate_keypair()
    assert a.secret != b.secret
    assert a.public != b.public
    assert helper_module.keypair_from_secret(a.secret).public == a.public


def test_build_register(helper_module, sender):
    assert helper_module.build_register(sender) == {"public_key": sender.public.hex()}


def test_build_mint(helper_module):
    plan = helper_module.build_mint(asset_value=42, next_nonce=3)
    assert plan["asset_commitment"] == helper_module.commitment_hex(42)
    assert plan["nonce"] == 3


def test_build_zk_transfer_verifies(helper_module, sender, receiver):
    plan = helper_module.build_zk_transfer(sender, receiver.public, 100, next_nonce=4)

    CubicZKProof().verify_proof(
        sender.public,
        receiver.public,
        bytes.fromhex(plan["asset_commitment"]),
        plan["challenge"],
        plan["response"],
    )
    assert 0 <= plan["response"] < helper_module.p
    assert plan["nonce"] == 4


def test_build_zk_transfer_binds_receiver(helper_module, sender, receiver):
    plan = helper_module.build_zk_transfer(sender, receiver.public, 100)

    with pytest.raises(ProofRejected):
        CubicZKProof().verify_proof(
            sender.public,
            sender.public,
            bytes.fromhex(plan["asset_commitment"]),
            plan["challenge"],
            plan["response"],
        )


def test_note_wallet_tracks_openings(helper_module, sender, receiver):
    wallet = helper_module.NoteWallet(sender)
    cmt = wallet.receive(100)
    wallet.receive(100)
    wallet.receive(7)
    assert wallet.balance() == 207

    plan = wallet.spend(cmt, receiver.public, next_nonce=1)
    assert plan["asset_commitment"] == cmt
    assert wallet.balance() == 107

    with pytest.raises(ValueError):
        wallet.spend(helper_module.commitment_hex(5), receiver.public)
