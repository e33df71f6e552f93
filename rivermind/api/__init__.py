from rivermind.api.claude import AnthropicTextGenerator, TextGenerator, parse_json_object

__all__ = ["AnthropicTextGenerator", "TextGenerator", "parse_json_object"]
