"""
Tests for configuration records.
"""
import pytest

from redis_bloom.config import FilterConfig, FilterSettings
from redis_bloom.errors import NotInitializedError


class TestFilterConfig:
    """Test cases for the stored configuration record."""
    
    def test_to_mapping(self):
        """Test the field map written to Redis."""
        config = FilterConfig(size=729, hash_iterations=5, expected_insertions=100, false_probability=0.03)
        
        assert config.to_mapping() == {
            "size": "729",
            "hashIterations": "5",
            "expectedInsertions": "100",
            "falseProbability": "0.03",
        }
    
    def test_from_mapping_bytes(self):
        """Test parsing a raw Redis reply."""
        config = FilterConfig.from_mapping("f", {
            b"size": b"9585",
            b"hashIterations": b"7",
            b"expectedInsertions": b"1000",
            b"falseProbability": b"0.01",
        })
        
        assert config == FilterConfig(9585, 7, 1000, 0.01)
    
    def test_mapping_roundtrip(self):
        """Test that a record survives the store encoding."""
        config = FilterConfig(72_984_408, 5, 10_000_000, 0.03)
        
        assert FilterConfig.from_mapping("f", config.to_mapping()) == config
    
    @pytest.mark.parametrize("data", [None, {}, {"size": "729", "hashIterations": "5"}])
    def test_missing_fields(self, data):
        """Test that incomplete maps mean the filter is not initialized."""
        with pytest.raises(NotInitializedError, match="'f'"):
            FilterConfig.from_mapping("f", data)
    
    def test_immutable(self):
        """Test that the record cannot be changed."""
        config = FilterConfig(729, 5, 100, 0.03)
        
        with pytest.raises(AttributeError):
            config.size = 1


class TestFilterSettings:
    """Test cases for client settings."""
    
    def test_defaults_validate(self):
        """Test that default settings are valid."""
        assert FilterSettings().validate()
    
    def test_file_roundtrip(self, tmp_path):
        """Test saving and loading settings."""
        path = tmp_path / "settings.json"
        settings = FilterSettings(name="users", ttl_seconds=60, false_probability=0.001)
        
        settings.to_file(str(path))
        
        assert FilterSettings.from_file(str(path)) == settings
    
    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"expected_insertions": 0},
        {"false_probability": 0},
        {"false_probability": 1.5},
        {"ttl_seconds": -1},
    ])
    def test_validate_rejects(self, overrides):
        """Test invalid settings."""
        with pytest.raises(ValueError):
            FilterSettings(**overrides).validate()
