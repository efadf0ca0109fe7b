import importlib.util
from pathlib import Path

import contracting
import pytest
from contracting.client import ContractingClient
from contracting.compilation import whitelists

from zk_transaction import KeyPair

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONTRACT_PATH = PROJECT_ROOT / "con_zk_token.py"
HELPER_PATH = PROJECT_ROOT / "zk_client.py"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)


@pytest.fixture(scope="session", autouse=True)
def whitelist_hashlib():
    whitelists.ALLOWED_BUILTINS.update({"hashlib"})


@pytest.fixture(scope="session")
def helper_module():
    spec = importlib.util.spec_from_file_location("zk_client_tests", HELPER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def sender():
    return KeyPair(bytes.fromhex("a1" * 32))


@pytest.fixture
def receiver():
    return KeyPair(bytes.fromhex("b2" * 32))


@pytest.fixture
def client():
    client = ContractingClient(signer="operator", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    return client


@pytest.fixture
def contract(client):
    code = CONTRACT_PATH.read_text()
    client.submit(code, name="con_zk_token", owner=None)
    return client.get_contract("con_zk_token")
