"""Tests for regenesis.surgery.handlers: per-variant transforms."""

from __future__ import annotations

import inspect
from dataclasses import replace

import pytest

from regenesis.core.constants import KECCAK256_NULL, KECCAK256_RLP, NEW_ETH_ADDRESS, OLD_ETH_ADDRESS
from regenesis.core.errors import (
    CompilerVersionUnknownError,
    GenesisAccountMissingError,
    ImmutableRelocationError,
    MissingSourceError,
    SurgeryNotImplementedError,
)
from regenesis.core.types import Account, AccountType
from regenesis.ingestion.solidity_compiler import CompiledArtifact, Toolchain
from regenesis.surgery.handlers import HANDLERS, code_hash, get_handler

from .conftest import FakeCompiler, FakeRpcClient

PREDEPLOY = "0x4200000000000000000000000000000000000010"
K0 = "0x" + "00" * 32
K1 = "0x" + "00" * 31 + "01"
K2 = "0x" + "00" * 31 + "02"


async def _call(account_type, account, data):
    result = get_handler(account_type)(account, data)
    if inspect.isawaitable(result):
        result = await result
    return result


@pytest.fixture
def predeploy_pair(contract_account):
    legacy = replace(contract_account, address=PREDEPLOY, storage={K0: "aa", K1: "bb"})
    genesis = Account(
        address=PREDEPLOY,
        nonce=0,
        balance="0",
        code_hash="ee" * 32,
        storage_root="ff" * 32,
        code="600160005260",
        storage={K1: "11", K2: "22"},
    )
    return legacy, genesis


class TestRegistry:
    def test_every_variant_has_handler(self):
        assert set(HANDLERS) == set(AccountType)

    def test_code_hash_of_empty_code(self):
        assert code_hash("") == KECCAK256_NULL


class TestSimpleHandlers:
    @pytest.mark.asyncio
    async def test_eoa(self, dummy_account):
        output = await _call(AccountType.EOA, dummy_account, None)
        assert output.address == dummy_account.address
        assert output.nonce == dummy_account.nonce
        assert output.balance == dummy_account.balance
        assert output.code_hash == KECCAK256_NULL
        assert output.storage_root == KECCAK256_RLP
        assert output.code is None
        assert output.storage is None

    @pytest.mark.asyncio
    async def test_precompile_identity(self, dummy_account):
        assert await _call(AccountType.PRECOMPILE, dummy_account, None) == dummy_account

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "account_type",
        [AccountType.PREDEPLOY_DEAD, AccountType.UNVERIFIED, AccountType.UNISWAP_V3_LIB],
    )
    async def test_deleted(self, dummy_account, eoa_account, account_type):
        for account in (dummy_account, eoa_account):
            assert await _call(account_type, account, None) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "account_type",
        [AccountType.PREDEPLOY_WETH, AccountType.UNISWAP_V3_FACTORY, AccountType.UNISWAP_V3_NFPM],
    )
    async def test_not_implemented_fails_loudly(self, dummy_account, account_type):
        with pytest.raises(SurgeryNotImplementedError) as exc_info:
            await _call(account_type, dummy_account, None)
        assert exc_info.value.address == dummy_account.address


class TestPredeployHandlers:
    @pytest.mark.asyncio
    async def test_wipe(self, make_data_sources, predeploy_pair):
        legacy, genesis = predeploy_pair
        data = make_data_sources(accounts=[legacy], genesis=[genesis])
        output = await _call(AccountType.PREDEPLOY_WIPE, legacy, data)
        assert output.code == genesis.code
        assert output.code_hash == genesis.code_hash
        assert output.storage == {K1: "11", K2: "22"}
        assert output.nonce == legacy.nonce
        assert legacy.storage == {K0: "aa", K1: "bb"}

    @pytest.mark.asyncio
    async def test_no_wipe_merges_genesis_over_legacy(self, make_data_sources, predeploy_pair):
        legacy, genesis = predeploy_pair
        data = make_data_sources(accounts=[legacy], genesis=[genesis])
        output = await _call(AccountType.PREDEPLOY_NO_WIPE, legacy, data)
        assert output.code == genesis.code
        assert output.storage == {K0: "aa", K1: "11", K2: "22"}

    @pytest.mark.asyncio
    async def test_eth_uses_legacy_eth_storage(self, make_data_sources, contract_account):
        old_eth = replace(contract_account, address=OLD_ETH_ADDRESS, storage={K0: "01", K1: "02"})
        legacy = replace(contract_account, address=NEW_ETH_ADDRESS, storage={K2: "ff"})
        genesis = replace(contract_account, address=NEW_ETH_ADDRESS, code="6002", code_hash="12" * 32,
                          storage={K1: "99"})
        data = make_data_sources(accounts=[old_eth, legacy], genesis=[genesis])
        output = await _call(AccountType.PREDEPLOY_ETH, legacy, data)
        assert output.address == NEW_ETH_ADDRESS
        assert output.code == "6002"
        assert output.storage == {K0: "01", K1: "99"}

    @pytest.mark.asyncio
    async def test_missing_genesis_account(self, make_data_sources, predeploy_pair):
        legacy, _ = predeploy_pair
        with pytest.raises(GenesisAccountMissingError):
            await _call(AccountType.PREDEPLOY_WIPE, legacy, make_data_sources(accounts=[legacy]))


class TestRemoteCodeHandlers:
    @pytest.mark.asyncio
    async def test_pool_moves_to_new_address(self, make_data_sources, contract_account):
        new_address = "0x" + "bb" * 20
        l2 = FakeRpcClient({new_address: "60ff"})
        data = make_data_sources(pools={contract_account.address: new_address}, l2_client=l2)
        output = await _call(AccountType.UNISWAP_V3_POOL, contract_account, data)
        assert output.address == new_address
        assert output.code == "60ff"
        assert output.code_hash == code_hash("60ff")
        assert output.storage == contract_account.storage
        assert l2.calls == [new_address]

    @pytest.mark.asyncio
    async def test_other_refetches_mainnet_code(self, make_data_sources, contract_account):
        l1 = FakeRpcClient({contract_account.address: "60aa"})
        data = make_data_sources(l1_mainnet_client=l1)
        output = await _call(AccountType.UNISWAP_V3_OTHER, contract_account, data)
        assert output.address == contract_account.address
        assert output.code == "60aa"
        assert output.code_hash == code_hash("60aa")


class TestVerifiedHandler:
    @pytest.mark.asyncio
    async def test_recompiles(self, make_data_sources, contract_account, verified_contract):
        compiler = FakeCompiler({Toolchain.SOLC: CompiledArtifact("file", "Counter", "6080604052348015600f57")})
        data = make_data_sources(contracts=[verified_contract], compiler=compiler)
        output = await _call(AccountType.VERIFIED, contract_account, data)

        assert output.address == contract_account.address
        assert output.nonce == contract_account.nonce
        assert output.balance == contract_account.balance
        assert output.code != contract_account.code
        assert output.code_hash != contract_account.code_hash
        assert output.code_hash == code_hash(output.code)
        assert compiler.calls == [("v0.7.6+commit.7338295f", Toolchain.SOLC)]

    @pytest.mark.asyncio
    async def test_immutables_copied_from_live_code(self, make_data_sources, contract_account, verified_contract):
        new_code = "60" * 4 + "00" * 4 + "f3"
        live_code = "5b" * 6 + "cafebabe" + "00"
        compiler = FakeCompiler({
            Toolchain.SOLC: CompiledArtifact("file", "Counter", new_code, {"9": [{"start": 4, "length": 4}]}),
            Toolchain.OVM: CompiledArtifact("file", "Counter", "00" * 11, {"9": [{"start": 6, "length": 4}]}),
        })
        account = replace(contract_account, code=live_code)
        data = make_data_sources(contracts=[verified_contract], compiler=compiler)
        output = await _call(AccountType.VERIFIED, account, data)

        assert output.code == "60" * 4 + "cafebabe" + "f3"
        assert output.code_hash == code_hash(output.code)
        assert compiler.calls[1] == (verified_contract.compiler_version, Toolchain.OVM)

    @pytest.mark.asyncio
    async def test_immutable_length_mismatch_is_fatal(self, make_data_sources, contract_account, verified_contract):
        compiler = FakeCompiler({
            Toolchain.SOLC: CompiledArtifact("file", "Counter", "00" * 40, {"9": [{"start": 0, "length": 32}]}),
            Toolchain.OVM: CompiledArtifact("file", "Counter", "00" * 40, {"9": [{"start": 0, "length": 20}]}),
        })
        data = make_data_sources(contracts=[verified_contract], compiler=compiler)
        with pytest.raises(ImmutableRelocationError):
            await _call(AccountType.VERIFIED, replace(contract_account, code="00" * 40), data)

    @pytest.mark.asyncio
    async def test_missing_source(self, make_data_sources, contract_account):
        with pytest.raises(MissingSourceError):
            await _call(AccountType.VERIFIED, contract_account, make_data_sources())

    @pytest.mark.asyncio
    async def test_unknown_compiler_version(self, make_data_sources, contract_account, verified_contract):
        contract = replace(verified_contract, compiler_version="v0.4.26")
        with pytest.raises(CompilerVersionUnknownError, match="v0.4.26"):
            await _call(AccountType.VERIFIED, contract_account, make_data_sources(contracts=[contract]))

    @pytest.mark.asyncio
    async def test_library_linking_not_implemented(self, make_data_sources, contract_account, verified_contract):
        artifact = CompiledArtifact("file", "Counter", "73__$1234$__", link_references={"file": {"L": []}})
        data = make_data_sources(contracts=[verified_contract], compiler=FakeCompiler({Toolchain.SOLC: artifact}))
        with pytest.raises(SurgeryNotImplementedError, match="library"):
            await _call(AccountType.VERIFIED, contract_account, data)
