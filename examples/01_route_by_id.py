"""
Route by Actor Id Example

Demonstrates:
- Registering an actor's address with a REGISTER_ACTOR control message
- Forwarding a passthrough message to that actor by id
- Moving the actor with UPDATE_ACTOR_ADDRESS
"""

import asyncio
import json
import logging

from actorbus import ActorAddress, Bus, InMemoryAddressCache, TcpServer, send_frame, tcp_transport


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    # Two "actors", each just a TCP listener printing what it receives
    inbox_a = TcpServer("127.0.0.1")
    inbox_b = TcpServer("127.0.0.1")
    inbox_a.messages.subscribe(lambda data: print(f"[worker@a] {data.decode()}"))
    inbox_b.messages.subscribe(lambda data: print(f"[worker@b] {data.decode()}"))
    await inbox_a.listen(0)
    await inbox_b.listen(0)

    transport = tcp_transport("127.0.0.1")
    bus = Bus(cache=InMemoryAddressCache(), transport=transport)
    await bus.start(0)
    bus_host, bus_port = transport.server.address
    endpoint = ActorAddress(bus_host, bus_port)

    async def post(message: dict) -> None:
        await send_frame(endpoint, json.dumps(message).encode())
        await asyncio.sleep(0.1)

    await post({
        "type": "REGISTER_ACTOR",
        "payload": {"actor_id": "worker", "actor_address": f"127.0.0.1:{inbox_a.address[1]}"},
    })
    await post({"action": {"job": 1}, "receiver_id": "worker"})

    await post({
        "type": "UPDATE_ACTOR_ADDRESS",
        "payload": {"actor_id": "worker", "actor_address": f"127.0.0.1:{inbox_b.address[1]}"},
    })
    await post({"action": {"job": 2}, "receiver_id": "worker"})

    await post({"type": "DEREGISTER_ACTOR", "payload": {"actor_id": "worker"}})
    await post({"action": {"job": 3}, "receiver_id": "worker"})  # dropped with a warning

    await bus.stop()
    await bus.drain()
    await inbox_a.close()
    await inbox_b.close()


if __name__ == "__main__":
    asyncio.run(main())
