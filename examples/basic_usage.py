"""Basic usage example for pyomnilogic library."""

import asyncio
import logging

from pyomnilogic import EquipmentError, OmniLogicClient


async def main() -> None:
    """Demonstrate basic usage of pyomnilogic."""
    logging.basicConfig(level=logging.INFO)

    # Log in and start background token refresh
    client = await OmniLogicClient.with_credentials("your@email.com", "your_password")

    async with client:
        system_id = await client.connect()
        print(f"Connected to controller {system_id}")

        backyard = await client.get_backyard()
        print(f"Air temperature: {backyard.air_temp}F")

        for pump in await client.get_pumps():
            state = "running" if pump.is_running else "stopped"
            print(f"\nPump {pump.system_id}: {state} at {pump.filter_speed}% (last speed {pump.last_speed}%)")

        for heater in await client.get_heaters():
            print(f"Heater {heater.system_id}: set point {heater.current_set_point}F, enabled: {heater.enable}")

        for light in await client.get_lights():
            print(f"Light {light.system_id}: {'on' if light.is_on else 'off'}")

        for chlorinator in await client.get_chlorinators():
            print(f"Chlorinator {chlorinator.system_id}: salt {chlorinator.avg_salt_level} ppm")

        try:
            temperature = await client.get_water_temperature()
        except EquipmentError:
            print("\nNo pump is running, water temperature unavailable")
        else:
            print(f"\nWater: {temperature.current}F, target {temperature.target}F, heater on: {temperature.heater_on}")

        # Commands return False when the controller rejects them
        pumps = await client.get_pumps()
        if pumps:
            print("\nSetting first pump to 60%...")
            if await client.set_pump_speed(pumps[0], 60):
                print(f"Pump speed is now {await client.get_pump_speed(pumps[0])}%")

        lights = await client.get_lights()
        if lights:
            light = lights[0]
            print(f"Turning light {light.system_id} {'off' if light.is_on else 'on'}...")
            await client.set_light_state(light, not light.is_on)

        # Store client.token and client.user_id to use OmniLogicClient.with_token() next time
        refreshed = await client.refresh_token_if_needed()
        print(f"\nToken refreshed: {refreshed}")


if __name__ == "__main__":
    asyncio.run(main())
