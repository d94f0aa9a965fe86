from .mock_instrument import DEFAULT_IDENTITY, MockInstrument, make_block, run_mock
