"""
Artistic Styles Library
Preset prompts for the artistic QR styles.
"""

from typing import Dict, List, Optional

ARTISTIC_STYLES: Dict[str, Dict[str, str]] = {
    # Nature & Landscapes
    "sunset": {
        "name": "Golden Sunset",
        "prompt": "Beautiful sunset over mountains, golden hour, dramatic clouds, vibrant orange and purple colors, masterpiece, high quality, 8k",
        "negative_prompt": "low quality, blurry, pixelated, noise",
        "category": "nature",
    },
    "forest": {
        "name": "Enchanted Forest",
        "prompt": "Mystical forest with sunbeams, lush green trees, magical atmosphere, fantasy art, detailed foliage, high quality",
        "negative_prompt": "dark, scary, low quality",
        "category": "nature",
    },
    "ocean": {
        "name": "Ocean Waves",
        "prompt": "Crystal clear ocean water, turquoise waves, tropical paradise, palm trees, sunny day, photorealistic",
        "negative_prompt": "stormy, dark, low quality",
        "category": "nature",
    },

    # Urban & Modern
    "cyberpunk": {
        "name": "Cyberpunk City",
        "prompt": "Futuristic cyberpunk city, neon lights, rain reflections, purple and blue tones, high tech, dystopian, detailed, 8k",
        "negative_prompt": "daytime, bright, low quality",
        "category": "urban",
    },
    "minimalist": {
        "name": "Minimalist Design",
        "prompt": "Clean minimalist design, geometric patterns, modern aesthetic, simple colors, professional, high contrast",
        "negative_prompt": "cluttered, messy, complex",
        "category": "urban",
    },
    "graffiti": {
        "name": "Street Art",
        "prompt": "Vibrant street art graffiti style, colorful spray paint, urban wall, artistic, bold colors, high detail",
        "negative_prompt": "plain, boring, low quality",
        "category": "urban",
    },

    # Art Styles
    "watercolor": {
        "name": "Watercolor Art",
        "prompt": "Soft watercolor painting, pastel colors, artistic brush strokes, dreamy atmosphere, delicate, hand painted",
        "negative_prompt": "digital, sharp, photorealistic",
        "category": "artistic",
    },
    "anime": {
        "name": "Anime Style",
        "prompt": "Beautiful anime art style, vibrant colors, detailed illustration, manga aesthetic, high quality, Studio Ghibli inspired",
        "negative_prompt": "realistic, western style, low quality",
        "category": "artistic",
    },
    "geometric": {
        "name": "Geometric Patterns",
        "prompt": "Abstract geometric patterns, mathematical art, symmetrical shapes, vibrant colors, modern design, high contrast",
        "negative_prompt": "organic, natural, random",
        "category": "artistic",
    },

    # Business & Professional
    "corporate": {
        "name": "Corporate Professional",
        "prompt": "Professional corporate design, clean lines, business aesthetic, blue and white tones, modern office, high quality",
        "negative_prompt": "casual, messy, colorful",
        "category": "business",
    },
    "luxury": {
        "name": "Luxury Gold",
        "prompt": "Luxury design with gold accents, elegant patterns, premium feel, black and gold, sophisticated, high end",
        "negative_prompt": "cheap, simple, plain",
        "category": "business",
    },

    # Food & Hospitality
    "food": {
        "name": "Gourmet Food",
        "prompt": "Delicious gourmet food photography, restaurant quality, appetizing, vibrant colors, professional food styling, high detail",
        "negative_prompt": "unappetizing, low quality, bad lighting",
        "category": "food",
    },
    "coffee": {
        "name": "Coffee Shop",
        "prompt": "Cozy coffee shop aesthetic, warm tones, latte art, rustic wood, inviting atmosphere, instagram worthy",
        "negative_prompt": "cold, sterile, industrial",
        "category": "food",
    },

    # Seasonal & Events
    "christmas": {
        "name": "Christmas Theme",
        "prompt": "Festive Christmas scene, snow, decorated tree, warm lights, cozy atmosphere, red and green colors, holiday spirit",
        "negative_prompt": "summer, hot, dark",
        "category": "seasonal",
    },
    "halloween": {
        "name": "Halloween Spooky",
        "prompt": "Spooky Halloween theme, pumpkins, autumn colors, mysterious atmosphere, orange and black, festive",
        "negative_prompt": "bright, cheerful, summery",
        "category": "seasonal",
    },
}


def get_style(style_key: str) -> Optional[Dict[str, str]]:
    """Get a style by key, or None if unknown."""
    return ARTISTIC_STYLES.get(style_key)


def serialize_style(key: str, style: Dict[str, str]) -> Dict[str, str]:
    """Catalog entry as exposed over HTTP."""
    return {
        "key": key,
        "name": style["name"],
        "category": style["category"],
        "prompt": style["prompt"],
        "negativePrompt": style["negative_prompt"],
    }


def list_styles(category: Optional[str] = None) -> List[Dict[str, str]]:
    """All styles, optionally restricted to one category."""
    return [
        serialize_style(key, style)
        for key, style in ARTISTIC_STYLES.items()
        if category is None or style["category"] == category
    ]


def get_categories() -> List[str]:
    """Distinct categories in catalog order."""
    return list(dict.fromkeys(style["category"] for style in ARTISTIC_STYLES.values()))
