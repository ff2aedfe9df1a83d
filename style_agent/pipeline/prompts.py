"""
Prompt construction for the style analysis call.

The system prompt carries the user's preferences and the exact JSON shape the
model must answer with; the user turn carries the image itself.
"""

from __future__ import annotations
from typing import Any, Dict, List

from ..models import AnalysisOptions


RESPONSE_SCHEMA_EXAMPLE = """{
  "style_analysis": {
    "dominant_style": "Description of the dominant style",
    "aesthetic": "Description of the aesthetic",
    "color_palette": ["#HEX1", "#HEX2", "#HEX3", "#HEX4"]
  },
  "general_style_tips": [
    "Tip 1 for styling this aesthetic",
    "Tip 2 for styling this aesthetic",
    "Tip 3 for styling this aesthetic"
  ],
  "recommendations": [
    {
      "type": "Style Name",
      "items": [
        {
          "name": "Item Name",
          "price": "$XX.XX",
          "description": "Description",
          "style_match": "Why it matches their style",
          "links": {
            "amazon": "https://www.amazon.com/s?k=Item+Name+Style+Name",
            "asos": "https://www.asos.com/search/?q=Item+Name+Style+Name",
            "nordstrom": "https://www.nordstrom.com/sr?keyword=Item+Name+Style+Name"
          }
        }
      ]
    }
  ]
}"""

USER_INSTRUCTION = "Analyze this image and recommend fashion items that match this style."


def build_system_prompt(options: AnalysisOptions) -> str:
    """
    Build the stylist system prompt for the given preferences.

    Args:
        options: Budget tier, gender, clothing size and shoe size. Values are
            passed through verbatim; the model interprets them.

    Returns:
        Prompt text asking for a JSON object shaped like RESPONSE_SCHEMA_EXAMPLE
    """
    return f"""You are a professional fashion stylist and personal shopper with expertise in analyzing fashion styles from images.

Analyze the uploaded image and identify the dominant fashion style, aesthetic, and color palette. The image may be an Instagram grid, a single post, or any fashion-related image.

Based on this analysis, recommend specific clothing items and accessories that match this style.

The user's preferences are:
- Budget: {options.budget}
- Gender: {options.gender}
- Size: {options.size}
- Shoe Size: {options.shoe_size}

Format your response as JSON with the following structure:
{RESPONSE_SCHEMA_EXAMPLE}

Include 2-3 different style types with 2-3 items each. For the links, create search URLs that will search for the item name on each platform. The links should be properly URL-encoded search queries."""


def build_messages(image: str, options: AnalysisOptions) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": build_system_prompt(options)},
        {
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": image}},
                {"type": "text", "text": USER_INSTRUCTION},
            ],
        },
    ]
