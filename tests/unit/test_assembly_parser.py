import pytest
from tierstack.PARSERS.assembly_parser import AssemblyParser
from tierstack.UTILS.string_interpolation import EnvironmentInterpolator
from tierstack.MODELS.errors import InvalidConfigurationError, MissingConfigurationError

ASSEMBLY = """
assembly: dev-petapp
region: ${TIERSTACK_TEST_REGION:-us-east-1}
stacks:
  base:
    cidr: 10.1.0.0/16
    profile: ${TIERSTACK_TEST_PROFILE}
  petapp:
    repository: org/petapp
    branch: main
"""

def test_parse_from_string():
    config = AssemblyParser().parse_from_string(ASSEMBLY, {"TIERSTACK_TEST_PROFILE": "manning.idp.dev"})
    assert config.assembly == "dev-petapp"
    assert config.region == "us-east-1"
    assert config.stacks["base"]["profile"] == "manning.idp.dev"
    assert config.stack_settings("petapp") == {"region": "us-east-1", "repository": "org/petapp", "branch": "main"}

def test_missing_variable():
    with pytest.raises(MissingConfigurationError) as exc:
        AssemblyParser(context={}).parse_from_string(ASSEMBLY)
    assert "TIERSTACK_TEST_PROFILE" in str(exc.value)

def test_parse_file_with_dotenv(tmp_path, monkeypatch):
    monkeypatch.delenv("TIERSTACK_TEST_PROFILE", raising=False)
    monkeypatch.setenv("TIERSTACK_TEST_REGION", "eu-west-1")
    (tmp_path / ".env").write_text("TIERSTACK_TEST_PROFILE=from-dotenv\nTIERSTACK_TEST_REGION=us-west-2\n")
    path = tmp_path / "tierstack.yml"
    path.write_text(ASSEMBLY)

    config = AssemblyParser().parse(str(path))
    assert config.stacks["base"]["profile"] == "from-dotenv"
    # process environment wins over .env
    assert config.region == "eu-west-1"

def test_empty_and_null_sections():
    parser = AssemblyParser(context={})
    assert parser.parse_from_string("").stacks == {}
    config = parser.parse_from_string("stacks:\n  base:\n")
    assert config.stack_settings("base") == {"region": "us-east-1"}

def test_invalid_yaml():
    with pytest.raises(InvalidConfigurationError):
        AssemblyParser(context={}).parse_from_string("stacks: [unclosed")

def test_not_a_mapping():
    with pytest.raises(InvalidConfigurationError):
        AssemblyParser(context={}).parse_from_string("- base\n- petapp\n")

def test_invalid_shape():
    with pytest.raises(InvalidConfigurationError):
        AssemblyParser(context={}).parse_from_string("stacks: base\n")

def test_interpolation_modifiers():
    context = {"SET": "value", "EMPTY": ""}
    assert EnvironmentInterpolator.interpolate("${SET:-x}/${EMPTY:-x}", context) == "value/x"
    assert EnvironmentInterpolator.interpolate("${SET:+on}/${EMPTY:+on}", context) == "on/"
    assert EnvironmentInterpolator.interpolate("cost: $$5", context) == "cost: $5"
    with pytest.raises(MissingConfigurationError) as exc:
        EnvironmentInterpolator.interpolate("${EMPTY:?profile is required}", context)
    assert "profile is required" in str(exc.value)
