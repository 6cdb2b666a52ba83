from pydantic import BaseModel, Field

class Resources(BaseModel):
    """Signed resource amounts. Used for production rates and upkeep."""
    fish: int = 0
    tourism: int = 0
    energy: int = 0

    def __add__(self, other: "Resources") -> "Resources":
        return Resources(
            fish=self.fish + other.fish,
            tourism=self.tourism + other.tourism,
            energy=self.energy + other.energy
        )

class ResourceBundle(BaseModel):
    """A city's stockpile. Every field stays at or above zero."""
    fish: int = Field(0, ge=0)
    tourism: int = Field(0, ge=0)
    energy: int = Field(0, ge=0)

    def can_afford(self, cost: "ResourceBundle") -> bool:
        return (
            self.fish >= cost.fish
            and self.tourism >= cost.tourism
            and self.energy >= cost.energy
        )

    def deduct(self, cost: "ResourceBundle") -> "ResourceBundle":
        """Return the bundle left after paying cost. Caller checks can_afford first."""
        return ResourceBundle(
            fish=self.fish - cost.fish,
            tourism=self.tourism - cost.tourism,
            energy=self.energy - cost.energy
        )

    def apply(self, delta: Resources) -> "ResourceBundle":
        """Add a signed delta, clamping each field at zero."""
        return ResourceBundle(
            fish=max(0, self.fish + delta.fish),
            tourism=max(0, self.tourism + delta.tourism),
            energy=max(0, self.energy + delta.energy)
        )
